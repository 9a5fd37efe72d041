"""Error kinds raised by the spelling core.

The boundary layer (Flask app, CLI) turns these into user-facing messages;
nothing in the core renders text for the learner.
"""


class SpellingError(Exception):
    kind = "error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"error": self.message, "kind": self.kind, "retryable": self.retryable}


class ValidationError(SpellingError):
    """Malformed or out-of-range input; raised before any store access."""
    kind = "validation"


class NotFoundError(SpellingError):
    """Unknown session, word, learner or list id."""
    kind = "not_found"


class StateConflictError(SpellingError):
    """The action does not match the session's recorded state.

    Callers should retry the whole operation from a fresh read.
    """
    kind = "state_conflict"
    retryable = True


class LockNotAcquiredError(StateConflictError):
    """Another request currently holds the session lock."""


class StoreError(SpellingError):
    """The underlying store failed; nothing was committed."""
    kind = "store"
    retryable = True
