"""
Per-conversation state.

Two records live side by side for every conversation:
- ReservationState: what the guest told us so far
- DialogExecutionState: where the reservation waterfall is suspended

Both are plain dataclasses so they can be written to storage at the end of
a turn and rebuilt at the start of the next one.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

SLOT_FIELDS = ("time", "party_size", "full_name")


class Step(str, Enum):
    """Reservation waterfall steps, in execution order."""

    TIME = "time"
    PARTY_SIZE = "party_size"
    NAME = "name"
    CONFIRM = "confirm"
    FINAL = "final"


class DialogStatus(str, Enum):
    EMPTY = "empty"
    WAITING = "waiting"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass
class ReservationState:
    time: str | None = None
    party_size: str | None = None
    full_name: str | None = None

    def is_present(self, slot: str) -> bool:
        if slot not in SLOT_FIELDS:
            raise KeyError(slot)
        value = getattr(self, slot)
        return value is not None and str(value).strip() != ""

    def missing_fields(self) -> list[str]:
        return [slot for slot in SLOT_FIELDS if not self.is_present(slot)]

    def summary(self) -> str:
        return f"reservation for {self.time} for {self.party_size} people"


@dataclass
class DialogExecutionState:
    status: DialogStatus = DialogStatus.EMPTY
    # Raw value so that a corrupted or outdated step name survives loading
    # and can be detected by the sequencer.
    active_step: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == DialogStatus.WAITING and self.active_step is not None


@dataclass
class ConversationSession:
    conversation_id: str
    reservation: ReservationState = field(default_factory=ReservationState)
    dialog: DialogExecutionState = field(default_factory=DialogExecutionState)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["dialog"]["status"] = self.dialog.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationSession":
        dialog = data.get("dialog") or {}
        try:
            status = DialogStatus(dialog.get("status", DialogStatus.EMPTY.value))
        except ValueError:
            # Unknown status from storage; the sequencer resets it.
            status = DialogStatus.CANCELLED
        return cls(
            conversation_id=data["conversation_id"],
            reservation=ReservationState(**(data.get("reservation") or {})),
            dialog=DialogExecutionState(status=status, active_step=dialog.get("active_step")),
        )
