import random
import string
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import config
from .errors import ValidationError

ALPHABET = string.ascii_lowercase

INPUT_TAP_LETTERS = "tap_letters"
INPUT_TYPED = "typed"
INPUT_MODES = (INPUT_TAP_LETTERS, INPUT_TYPED)

PROMPT_MODES = ("audio", "no-audio")


@dataclass
class PromptData:
    prompt_id: str
    input_mode: str
    target_length: int
    prompt_mode: str = "audio"
    letter_tray: Optional[List[str]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "promptId": self.prompt_id,
            "inputMode": self.input_mode,
            "targetLength": self.target_length,
            "promptMode": self.prompt_mode,
        }
        if self.letter_tray is not None:
            data["letterTray"] = list(self.letter_tray)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PromptData":
        return cls(
            prompt_id=data["promptId"],
            input_mode=data["inputMode"],
            target_length=data["targetLength"],
            prompt_mode=data.get("promptMode", "audio"),
            letter_tray=data.get("letterTray"),
        )


def input_mode_for_level(level: int) -> str:
    """Tap-letters up to the configured level threshold, typed input above it."""
    return INPUT_TAP_LETTERS if level <= config.TAP_LETTERS_MAX_LEVEL else INPUT_TYPED


def generate_letter_tray(
    target_word: str,
    tray_size: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """
    Build a shuffled letter tray for tap-letters input.

    The tray holds every letter of the word (repeats included) plus filler
    letters drawn uniformly from a-z until ``tray_size`` is reached. A word
    longer than the tray keeps all its letters and gets no filler. Hyphens and
    apostrophes are not tiles.
    """
    rng = rng or random.Random()
    size = config.TRAY_SIZE if tray_size is None else tray_size
    tray = [letter for letter in target_word.lower() if letter in ALPHABET]
    while len(tray) < size:
        tray.append(rng.choice(ALPHABET))
    # random.shuffle is a Fisher-Yates shuffle: every ordering equally likely
    rng.shuffle(tray)
    return tray


def build_prompt(
    target_word: str,
    level: int,
    prompt_mode: str = "audio",
    rng: Optional[random.Random] = None,
    tray_size: Optional[int] = None,
) -> PromptData:
    """Build the presentation for one word. Stateless: every call makes a new id and tray."""
    if not target_word:
        raise ValidationError("target word is required")
    if level < 1:
        raise ValidationError(f"level must be >= 1, got {level}")
    if prompt_mode not in PROMPT_MODES:
        raise ValidationError(f"unknown prompt mode: {prompt_mode}")

    input_mode = input_mode_for_level(level)
    prompt = PromptData(
        prompt_id=uuid.uuid4().hex,
        input_mode=input_mode,
        target_length=len(target_word),
        prompt_mode=prompt_mode,
    )
    if input_mode == INPUT_TAP_LETTERS:
        prompt.letter_tray = generate_letter_tray(target_word, tray_size=tray_size, rng=rng)
    return prompt
