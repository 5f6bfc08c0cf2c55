"""
Slot input validation and the prompts that ask for each slot.

Validation never raises for bad user input: a failed check is a value
(``ValidationResult.ok is False``) that makes the dialog re-prompt.
"""

import re
from dataclasses import dataclass
from typing import Any

from reservation_bot.conversation_state import ReservationState

NON_NEGATIVE_INT = re.compile(r"^\+?\d+$")

AFFIRMATIVE = {"yes", "y", "yeah", "yep", "sure", "ok", "okay", "correct", "confirm", "right"}
NEGATIVE = {"no", "n", "nope", "nah", "cancel", "wrong", "incorrect"}


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    value: Any = None
    error: str | None = None


def is_non_empty(raw: str | None) -> bool:
    return raw is not None and raw.strip() != ""


def is_non_negative_int(raw: str | None) -> bool:
    return raw is not None and NON_NEGATIVE_INT.match(raw.strip()) is not None


def parse_confirmation(raw: str | None) -> bool | None:
    """Map a yes/no style answer to a bool; None when it is neither."""
    if raw is None:
        return None
    words = re.findall(r"[a-z']+", raw.lower())
    if not words:
        return None
    if words[0] in AFFIRMATIVE or " ".join(words) in ("that's right", "that is right"):
        return True
    if words[0] in NEGATIVE:
        return False
    return None


# Time and name are accepted as free text.
SLOT_VALIDATORS = {
    "time": is_non_empty,
    "party_size": is_non_negative_int,
    "full_name": is_non_empty,
}


def validate(slot_name: str, raw_text: str | None) -> bool:
    """Check raw user text against the expected shape of a slot."""
    try:
        check = SLOT_VALIDATORS[slot_name]
    except KeyError:
        raise KeyError(f"No validator for slot '{slot_name}'") from None
    return check(raw_text)


class TextPrompt:
    """Free-text prompt for a single slot."""

    def __init__(self, slot: str, text: str, retry_text: str | None = None):
        self.slot = slot
        self.text = text
        self.retry_text = retry_text or text

    def render(self, state: ReservationState) -> str:
        return self.text

    def validate(self, raw: str | None) -> ValidationResult:
        if not validate(self.slot, raw):
            return ValidationResult(ok=False, error=f"invalid {self.slot}")
        return ValidationResult(ok=True, value=raw.strip())


class NumberPrompt(TextPrompt):
    """Prompt whose answer must be a non-negative integer. The digits are kept as text."""

    def validate(self, raw: str | None) -> ValidationResult:
        if not validate(self.slot, raw):
            return ValidationResult(ok=False, error=f"{self.slot} must be a whole number")
        return ValidationResult(ok=True, value=raw.strip().lstrip("+"))


class ConfirmPrompt:
    """Yes/no prompt summarising the collected reservation."""

    def __init__(self, template: str, retry_text: str):
        self.template = template
        self.retry_text = retry_text

    def render(self, state: ReservationState) -> str:
        return self.template.format(summary=state.summary())

    def validate(self, raw: str | None) -> ValidationResult:
        answer = parse_confirmation(raw)
        if answer is None:
            return ValidationResult(ok=False, error="expected yes or no")
        return ValidationResult(ok=True, value=answer)
