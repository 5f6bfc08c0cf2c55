"""
Tests for slot validation and prompt objects.
"""

import pytest

from reservation_bot.conversation_state import ReservationState
from reservation_bot.validators import (
    ConfirmPrompt,
    NumberPrompt,
    TextPrompt,
    parse_confirmation,
    validate,
)


class TestValidate:
    """Test the per-slot validate() predicate."""

    @pytest.mark.parametrize("raw", ["4", " 12 ", "0", "+3"])
    def test_party_size_accepts_non_negative_integers(self, raw):
        assert validate("party_size", raw)

    @pytest.mark.parametrize("raw", ["four", "-2", "2.5", "", "   ", None, "4 people"])
    def test_party_size_rejects_everything_else(self, raw):
        assert not validate("party_size", raw)

    def test_time_and_name_are_free_text(self):
        assert validate("time", "next friday around 8")
        assert validate("full_name", "Jane Doe")

    def test_time_and_name_reject_blank(self):
        assert not validate("time", "  ")
        assert not validate("full_name", "")

    def test_unknown_slot_raises(self):
        with pytest.raises(KeyError):
            validate("dessert", "tiramisu")


class TestParseConfirmation:
    @pytest.mark.parametrize("raw", ["yes", "Yes!", "yeah sure", "ok", "That's right"])
    def test_affirmative(self, raw):
        assert parse_confirmation(raw) is True

    @pytest.mark.parametrize("raw", ["no", "No thanks", "nope", "cancel it"])
    def test_negative(self, raw):
        assert parse_confirmation(raw) is False

    @pytest.mark.parametrize("raw", ["maybe", "", "?!", None])
    def test_neither(self, raw):
        assert parse_confirmation(raw) is None


class TestPrompts:
    def test_number_prompt_keeps_digits_as_text(self):
        prompt = NumberPrompt("party_size", "How many?")
        result = prompt.validate(" +4 ")

        assert result.ok
        assert result.value == "4"

    def test_number_prompt_failure_has_no_value(self):
        result = NumberPrompt("party_size", "How many?").validate("a few")

        assert not result.ok
        assert result.value is None
        assert result.error

    def test_text_prompt_retry_defaults_to_prompt(self):
        prompt = TextPrompt("time", "When?")
        assert prompt.retry_text == "When?"
        assert prompt.render(ReservationState()) == "When?"

    def test_confirm_prompt_renders_summary(self):
        prompt = ConfirmPrompt("Booking a {summary}?", retry_text="yes or no")
        state = ReservationState(time="tomorrow at 07:00 PM", party_size="2")

        assert prompt.render(state) == "Booking a reservation for tomorrow at 07:00 PM for 2 people?"
        assert prompt.validate("yes").value is True
        assert not prompt.validate("perhaps").ok
