"""
Tests for the reservation waterfall state machine.
"""

import pytest

from reservation_bot.conversation_state import (
    ConversationSession,
    DialogStatus,
    ReservationState,
    Step,
)
from reservation_bot.dialog import (
    CONFIRM_PROMPT,
    DECLINED_MESSAGE,
    RESET_MESSAGE,
    Answer,
    Enter,
    ReservationDialog,
    SendPrompt,
    SendReply,
    WriteSlot,
    transition,
)
from reservation_bot.messages import Activity
from reservation_bot.turn_context import TurnContext


def turn_for(text: str = "", conversation_id: str = "conv_1") -> TurnContext:
    return TurnContext(Activity(conversation_id=conversation_id, text=text))


def texts(turn: TurnContext) -> list[str]:
    return [reply.text for reply in turn.replies]


class TestTransition:
    """Test the pure transition function."""

    def test_absent_slot_prompts_and_waits(self):
        moved = transition(Step.TIME, Enter(), ReservationState())

        assert moved.waiting
        assert moved.next_step == Step.TIME
        assert moved.effects == (SendPrompt("When do you need the reservation?"),)

    def test_present_slot_skips_without_effects(self):
        moved = transition(Step.TIME, Enter(), ReservationState(time="today at 08:00 PM"))

        assert not moved.waiting
        assert moved.next_step == Step.PARTY_SIZE
        assert moved.effects == ()

    def test_invalid_party_size_retries_without_write(self):
        moved = transition(Step.PARTY_SIZE, Answer("lots"), ReservationState())

        assert moved.waiting
        assert moved.next_step == Step.PARTY_SIZE
        assert len(moved.effects) == 1
        assert moved.effects[0].retry is True
        assert not any(isinstance(e, WriteSlot) for e in moved.effects)

    def test_valid_party_size_writes_and_advances(self):
        moved = transition(Step.PARTY_SIZE, Answer("4"), ReservationState())

        assert moved.next_step == Step.NAME
        assert moved.effects == (WriteSlot("party_size", "4"),)

    def test_transition_does_not_mutate_reservation(self):
        state = ReservationState()
        transition(Step.NAME, Answer("Jane"), state)

        assert state.full_name is None

    def test_confirm_always_prompts(self):
        state = ReservationState(time="tomorrow at 07:00 PM", party_size="2", full_name="Jane")
        moved = transition(Step.CONFIRM, Enter(), state)

        assert moved.waiting
        assert "tomorrow at 07:00 PM for 2 people" in moved.effects[0].text

    def test_confirm_answer_is_passed_to_final(self):
        moved = transition(Step.CONFIRM, Answer("no"), ReservationState())

        assert moved.next_step == Step.FINAL
        assert moved.result is False

    def test_final_ends_waterfall(self):
        state = ReservationState(time="today at 08:00 PM", party_size="3", full_name="Sam")
        moved = transition(Step.FINAL, Enter(True), state)

        assert moved.next_step is None
        assert isinstance(moved.effects[0], SendReply)
        assert "today at 08:00 PM" in moved.effects[0].text
        assert "Sam" in moved.effects[0].text

    def test_final_cannot_receive_an_answer(self):
        with pytest.raises(ValueError):
            transition(Step.FINAL, Answer("hello"), ReservationState())


class TestReservationDialog:
    """Test the sequencer that applies transitions to a session."""

    @pytest.fixture
    def dialog(self):
        return ReservationDialog()

    @pytest.fixture
    def session(self):
        return ConversationSession(conversation_id="conv_1")

    def test_begin_on_empty_state_asks_for_time(self, dialog, session):
        turn = turn_for()
        result = dialog.begin(turn, session)

        assert result.status == DialogStatus.WAITING
        assert session.dialog.active_step == Step.TIME.value
        assert texts(turn) == ["When do you need the reservation?"]

    def test_begin_skips_seeded_slots(self, dialog, session):
        session.reservation.time = "tomorrow at 07:00 PM"
        session.reservation.party_size = "2"
        turn = turn_for()

        dialog.begin(turn, session)

        assert texts(turn) == ["And the name on the reservation?"]
        assert session.dialog.active_step == Step.NAME.value

    def test_begin_with_every_slot_goes_to_confirmation(self, dialog, session):
        session.reservation = ReservationState(time="today at 08:00 PM", party_size="2", full_name="Jo")
        turn = turn_for()

        dialog.begin(turn, session)

        assert session.dialog.active_step == Step.CONFIRM.value
        assert texts(turn) == [CONFIRM_PROMPT.render(session.reservation)]

    def test_invalid_answer_keeps_state_and_step(self, dialog, session):
        session.reservation.time = "today at 08:00 PM"
        dialog.begin(turn_for(), session)

        turn = turn_for("a dozen")
        result = dialog.continue_dialog(turn, session)

        assert result.status == DialogStatus.WAITING
        assert session.reservation.party_size is None
        assert session.dialog.active_step == Step.PARTY_SIZE.value
        assert texts(turn) == ["Please tell me the number of people as a number, for example 4."]

    def test_full_run_confirmed(self, dialog, session):
        dialog.begin(turn_for(), session)
        for answer in ["friday 8pm", "4", "Jane"]:
            dialog.continue_dialog(turn_for(answer), session)

        assert session.reservation == ReservationState(
            time="friday 8pm", party_size="4", full_name="Jane"
        )

        turn = turn_for("yes")
        result = dialog.continue_dialog(turn, session)

        assert result.status == DialogStatus.COMPLETE
        assert result.result is True
        assert session.dialog.status == DialogStatus.COMPLETE
        assert session.dialog.active_step is None
        assert "friday 8pm" in turn.replies[-1].text

    def test_full_run_declined(self, dialog, session):
        session.reservation = ReservationState(time="today at 08:00 PM", party_size="2", full_name="Jo")
        dialog.begin(turn_for(), session)

        turn = turn_for("no")
        result = dialog.continue_dialog(turn, session)

        assert result.status == DialogStatus.COMPLETE
        assert texts(turn) == [DECLINED_MESSAGE]
        assert "08:00 PM" not in turn.replies[0].text

    def test_unclear_confirmation_retries(self, dialog, session):
        session.reservation = ReservationState(time="today at 08:00 PM", party_size="2", full_name="Jo")
        dialog.begin(turn_for(), session)

        turn = turn_for("hmm")
        dialog.continue_dialog(turn, session)

        assert texts(turn) == ["Please say 'yes' or 'no' to confirm."]
        assert session.dialog.active_step == Step.CONFIRM.value

    def test_continue_without_active_dialog_is_empty(self, dialog, session):
        turn = turn_for("hello")

        assert dialog.continue_dialog(turn, session).status == DialogStatus.EMPTY
        assert not turn.responded

    def test_unknown_step_is_reset(self, dialog, session):
        session.reservation.time = "today at 08:00 PM"
        session.dialog.status = DialogStatus.WAITING
        session.dialog.active_step = "dessert"
        turn = turn_for("tiramisu")

        result = dialog.continue_dialog(turn, session)

        assert result.status == DialogStatus.CANCELLED
        assert session.dialog.active_step is None
        assert texts(turn) == [RESET_MESSAGE]
        # Reservation slots survive a reset.
        assert session.reservation.time == "today at 08:00 PM"

    def test_unexpected_status_is_reset(self, dialog, session):
        session.dialog.status = DialogStatus.COMPLETE
        session.dialog.active_step = Step.NAME.value

        result = dialog.continue_dialog(turn_for("Jane"), session)

        assert result.status == DialogStatus.CANCELLED
        assert session.reservation.full_name is None

    def test_waiting_on_final_is_reset(self, dialog, session):
        session.dialog.status = DialogStatus.WAITING
        session.dialog.active_step = Step.FINAL.value

        result = dialog.continue_dialog(turn_for("yes"), session)

        assert result.status == DialogStatus.CANCELLED
        assert session.dialog.status == DialogStatus.CANCELLED

    def test_prompts_carry_ssml_when_configured(self, session):
        from reservation_bot.speech import SsmlGenerator

        dialog = ReservationDialog(ssml=SsmlGenerator("TestVoice"), language="en-GB")
        turn = turn_for()

        dialog.begin(turn, session)

        speak = turn.replies[0].speak
        assert speak.startswith("<speak")
        assert "When do you need the reservation?" in speak
        assert 'xml:lang="en-GB"' in speak

    def test_replay_is_deterministic(self, dialog):
        inputs = ["tonight", "nope", "3", "Ana", "maybe", "yes"]

        def run():
            session = ConversationSession(conversation_id="replay")
            prompts = []
            turn = turn_for()
            dialog.begin(turn, session)
            prompts.extend(texts(turn))
            for text in inputs:
                turn = turn_for(text)
                dialog.continue_dialog(turn, session)
                prompts.extend(texts(turn))
            return session.reservation, prompts

        assert run() == run()
