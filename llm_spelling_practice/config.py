"""Runtime configuration read from the environment."""
import logging
import os

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


DB_PATH: str = os.environ.get("LLM_SPELLING_DB", "spelling_practice.db")
DEBUG_MODE = os.getenv("DEBUG", "0") == "1"

# Rating model
K_FACTOR: float = _env_float("SPELLING_K_FACTOR", 24.0)
DEFAULT_RATING: float = _env_float("SPELLING_DEFAULT_RATING", 1500.0)
DEFAULT_LEVEL: int = _env_int("SPELLING_DEFAULT_LEVEL", 3)

# Session shape
MINI_SET_SIZE: int = _env_int("SPELLING_MINI_SET_SIZE", 5)
TRAY_SIZE: int = _env_int("SPELLING_TRAY_SIZE", 10)
TAP_LETTERS_MAX_LEVEL: int = _env_int("SPELLING_TAP_LETTERS_MAX_LEVEL", 1)
RECENT_ATTEMPT_WINDOW: int = _env_int("SPELLING_RECENT_ATTEMPTS", 20)
MAX_SPELLING_LENGTH: int = _env_int("SPELLING_MAX_SPELLING_LENGTH", 64)

# Concurrency
LOCK_TTL_SECONDS: int = _env_int("SPELLING_LOCK_TTL_SECONDS", 30)


def configure_logging() -> None:
    """Set up root logging for the CLI and web entry points."""
    logging.basicConfig(
        level=logging.DEBUG if DEBUG_MODE else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
