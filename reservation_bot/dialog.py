"""
Reservation waterfall as an explicit state machine.

Steps run in a fixed order: TIME -> PARTY_SIZE -> NAME -> CONFIRM -> FINAL.

``transition`` is pure: given the current step, an event and the reservation
collected so far it returns the effects to apply and where to go next. The
sequencer (ReservationDialog) applies those effects against the session and
keeps stepping until a step waits for user input or the waterfall ends.
Suspension is nothing more than ``DialogExecutionState.active_step`` being
saved with the session; the next inbound message resumes from there.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from reservation_bot.conversation_state import (
    ConversationSession,
    DialogStatus,
    ReservationState,
    Step,
)
from reservation_bot.speech import SsmlGenerator
from reservation_bot.turn_context import TurnContext
from reservation_bot.validators import ConfirmPrompt, NumberPrompt, TextPrompt

logger = logging.getLogger(__name__)

STEP_ORDER: tuple[Step, ...] = (Step.TIME, Step.PARTY_SIZE, Step.NAME, Step.CONFIRM, Step.FINAL)

SLOT_PROMPTS: dict[Step, TextPrompt] = {
    Step.TIME: TextPrompt("time", "When do you need the reservation?"),
    Step.PARTY_SIZE: NumberPrompt(
        "party_size",
        "How many people will you need the reservation for?",
        retry_text="Please tell me the number of people as a number, for example 4.",
    ),
    Step.NAME: TextPrompt("full_name", "And the name on the reservation?"),
}

CONFIRM_PROMPT = ConfirmPrompt(
    "Ok. Let me confirm the information: This is a {summary}. Is that correct?",
    retry_text="Please say 'yes' or 'no' to confirm.",
)

CONFIRMED_TEMPLATE = "Great, we will be expecting you {time}. Thanks for your reservation {name}!"
DECLINED_MESSAGE = "Thanks for using the Contoso Assistance. See you soon!"
RESET_MESSAGE = "Sorry, something went wrong with your reservation. Let's start over."


# Events


@dataclass(frozen=True)
class Enter:
    """Execution arrived at a step; ``result`` is what the previous step produced."""

    result: Any = None


@dataclass(frozen=True)
class Answer:
    """The user replied to the step that was waiting."""

    text: str


# Effects


@dataclass(frozen=True)
class SendPrompt:
    text: str
    retry: bool = False


@dataclass(frozen=True)
class SendReply:
    text: str


@dataclass(frozen=True)
class WriteSlot:
    slot: str
    value: Any


@dataclass(frozen=True)
class Transition:
    next_step: Step | None
    effects: tuple = field(default_factory=tuple)
    waiting: bool = False
    result: Any = None


def next_step(step: Step) -> Step | None:
    index = STEP_ORDER.index(step)
    return STEP_ORDER[index + 1] if index + 1 < len(STEP_ORDER) else None


def transition(step: Step, event: Enter | Answer, reservation: ReservationState) -> Transition:
    """Compute what a step does for one event. Never mutates ``reservation``."""
    if step in SLOT_PROMPTS:
        prompt = SLOT_PROMPTS[step]
        if isinstance(event, Enter):
            if reservation.is_present(prompt.slot):
                return Transition(next_step(step))
            return Transition(step, (SendPrompt(prompt.render(reservation)),), waiting=True)

        checked = prompt.validate(event.text)
        if not checked.ok:
            return Transition(step, (SendPrompt(prompt.retry_text, retry=True),), waiting=True)
        return Transition(next_step(step), (WriteSlot(prompt.slot, checked.value),))

    if step == Step.CONFIRM:
        if isinstance(event, Enter):
            return Transition(step, (SendPrompt(CONFIRM_PROMPT.render(reservation)),), waiting=True)

        checked = CONFIRM_PROMPT.validate(event.text)
        if not checked.ok:
            return Transition(
                step, (SendPrompt(CONFIRM_PROMPT.retry_text, retry=True),), waiting=True
            )
        return Transition(next_step(step), result=checked.value)

    if step == Step.FINAL:
        if isinstance(event, Enter):
            if event.result:
                text = CONFIRMED_TEMPLATE.format(time=reservation.time, name=reservation.full_name)
            else:
                text = DECLINED_MESSAGE
            return Transition(None, (SendReply(text),), result=bool(event.result))

    raise ValueError(f"No handler for step {step!r} and event {event!r}")


@dataclass
class DialogTurnResult:
    status: DialogStatus
    result: Any = None


class ReservationDialog:
    """
    Runs the waterfall for one conversation session per call.

    Every prompt and reply is sent through the TurnContext, with SSML
    attached when a speech generator is configured.
    """

    def __init__(self, ssml: SsmlGenerator | None = None, language: str = "en-US"):
        self.ssml = ssml
        self.language = language

    def begin(
        self, turn: TurnContext, session: ConversationSession, step: Step = Step.TIME
    ) -> DialogTurnResult:
        """Start the waterfall. Steps whose slots are already filled are skipped."""
        logger.info(f"Reservation dialog started for {session.conversation_id}")
        return self._run(turn, session, step, Enter())

    def continue_dialog(self, turn: TurnContext, session: ConversationSession) -> DialogTurnResult:
        """Feed this turn's text to the suspended step, if there is one."""
        dialog = session.dialog
        if dialog.active_step is None:
            return DialogTurnResult(DialogStatus.EMPTY)

        try:
            step = Step(dialog.active_step)
        except ValueError:
            step = None

        if step is None or dialog.status != DialogStatus.WAITING:
            logger.warning(
                f"Unexpected dialog state for {session.conversation_id}: "
                f"status={dialog.status.value} step={dialog.active_step}"
            )
            self.cancel_all(session)
            self._say(turn, RESET_MESSAGE)
            return DialogTurnResult(DialogStatus.CANCELLED)

        return self._run(turn, session, step, Answer(turn.text))

    def end(self, session: ConversationSession) -> None:
        """Release a finished dialog so the next message starts a fresh turn."""
        session.dialog.status = DialogStatus.COMPLETE
        session.dialog.active_step = None

    def cancel_all(self, session: ConversationSession) -> None:
        """Discard dialog execution state. The reservation slots are left as they are."""
        logger.info(f"Cancelling active dialogs for {session.conversation_id}")
        session.dialog.status = DialogStatus.CANCELLED
        session.dialog.active_step = None

    def _run(
        self, turn: TurnContext, session: ConversationSession, step: Step | None, event
    ) -> DialogTurnResult:
        result = None
        while step is not None:
            try:
                moved = transition(step, event, session.reservation)
            except ValueError as e:
                logger.error(f"Dialog error for {session.conversation_id}: {e}")
                self.cancel_all(session)
                self._say(turn, RESET_MESSAGE)
                return DialogTurnResult(DialogStatus.CANCELLED)

            self._apply(turn, session, moved.effects)

            if moved.waiting:
                session.dialog.status = DialogStatus.WAITING
                session.dialog.active_step = step.value
                return DialogTurnResult(DialogStatus.WAITING)

            logger.debug(f"{session.conversation_id}: {step.value} -> {moved.next_step}")
            result = moved.result
            step, event = moved.next_step, Enter(moved.result)

        self.end(session)
        logger.info(f"Reservation dialog complete for {session.conversation_id}")
        return DialogTurnResult(DialogStatus.COMPLETE, result=result)

    def _apply(self, turn: TurnContext, session: ConversationSession, effects) -> None:
        for effect in effects:
            if isinstance(effect, WriteSlot):
                setattr(session.reservation, effect.slot, effect.value)
            elif isinstance(effect, (SendPrompt, SendReply)):
                self._say(turn, effect.text)

    def _say(self, turn: TurnContext, text: str) -> None:
        speak = self.ssml.generate(text, self.language) if self.ssml else None
        turn.send(text, speak=speak)
