"""
Maps a recognized intent to what the turn should do next.

Only the single top intent is considered.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from dateutil import parser
from dateutil.parser import ParserError

from data.restaurant_content import (
    DISCOUNT_MESSAGE,
    SPECIALTIES_TITLE,
    TODAYS_SPECIALTIES,
)
from reservation_bot.messages import Activity, CardAction, CardImage, HeroCard, carousel, text_message
from reservation_bot.recognizer import (
    AMOUNT_PEOPLE,
    DATETIME,
    GET_DISCOUNTS,
    RESERVE_TABLE,
    TODAYS_SPECIALTY,
    RecognitionResult,
)
from reservation_bot.validators import validate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reply:
    activity: Activity


@dataclass(frozen=True)
class StartDialog:
    seed: dict[str, str | None] = field(default_factory=dict)


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Fallback:
    pass


Action = Reply | StartDialog | Continue | Fallback


def normalize_time_entity(
    value: Any, clock: Callable[[], datetime] = datetime.now
) -> str | None:
    """
    Turn a datetime entity into display text.

    Accepts a timex string or a ``{"timex": ...}`` object (timex may be a list).
    A missing clock component defaults to midnight. Returns None when nothing
    parseable is found, leaving the slot to be asked for.
    """
    if isinstance(value, dict):
        value = value.get("timex")
    if isinstance(value, list):
        value = value[0] if value else None
    if not isinstance(value, str) or not value.strip():
        return None

    timex = value.strip()
    if "T" not in timex:
        timex = f"{timex}T00:00"
    elif ":" not in timex.split("T", 1)[1]:
        timex = f"{timex}:00"

    try:
        moment = parser.isoparse(timex)
    except (ParserError, ValueError, OverflowError):
        logger.info(f"Unparseable datetime entity dropped: {value!r}")
        return None

    clock_text = moment.strftime("%I:%M %p")
    today = clock().date()
    if moment.date() == today:
        return f"today at {clock_text}"
    if moment.date() == today + timedelta(days=1):
        return f"tomorrow at {clock_text}"
    return moment.strftime("%B %d at ") + clock_text


class IntentRouter:
    """
    Chooses one Action per turn:

    - active dialog        -> Continue
    - ReserveTable         -> StartDialog seeded with time and party size
    - TodaysSpecialty      -> Reply with a carousel of dishes
    - GetDiscounts         -> Reply with the weekly promotion
    - anything else        -> Fallback (knowledge base, then "didn't understand")
    """

    def __init__(
        self,
        site_url: str,
        min_score: float = 0.5,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.site_url = site_url.rstrip("/")
        self.min_score = min_score
        self.clock = clock

    def route(self, recognition: RecognitionResult | None, dialog_active: bool = False) -> Action:
        if dialog_active:
            return Continue()

        if recognition is None:
            return Fallback()

        intent = recognition.top_intent
        if intent.score < self.min_score:
            logger.info(f"Intent {intent.name} below threshold ({intent.score:.2f})")
            return Fallback()

        logger.info(f"Routing intent {intent.name} ({intent.score:.2f})")
        if intent.name == RESERVE_TABLE:
            return StartDialog(seed=self._reservation_seed(recognition))
        if intent.name == TODAYS_SPECIALTY:
            return Reply(self._specialties())
        if intent.name == GET_DISCOUNTS:
            return Reply(text_message(DISCOUNT_MESSAGE))
        return Fallback()

    def _reservation_seed(self, recognition: RecognitionResult) -> dict[str, str | None]:
        party_size = recognition.first_entity(AMOUNT_PEOPLE)
        party_size = str(party_size).strip() if party_size is not None else None
        if party_size is not None and not validate("party_size", party_size):
            logger.info(f"Ignoring party size entity {party_size!r}")
            party_size = None

        return {
            "time": normalize_time_entity(recognition.first_entity(DATETIME), self.clock),
            "party_size": party_size.lstrip("+") if party_size else None,
        }

    def _specialties(self) -> Activity:
        cards = []
        for title, image in TODAYS_SPECIALTIES:
            url = f"{self.site_url}/{image}"
            cards.append(
                HeroCard(
                    images=[CardImage(url=url)],
                    buttons=[CardAction(title=title, value=title, image=url)],
                )
            )
        return carousel(cards, SPECIALTIES_TITLE)
