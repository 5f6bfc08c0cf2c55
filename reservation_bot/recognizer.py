"""
Intent recognition.

Two interchangeable recognizers produce the same RecognitionResult:
- KeywordRecognizer: deterministic patterns, no network, used by default
- LlmRecognizer: asks an LLM (through LiteLLM) to classify the utterance

A recognizer may return None. The router treats that as "no intent" and
the turn falls through to the knowledge base.
"""

import json
import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol

import litellm
from pydantic import BaseModel, Field, ValidationError

from reservation_bot.circuit_breaker import CircuitBreaker
from reservation_bot.config import ConfigurationError, Settings
from reservation_bot.messages import Activity
from reservation_bot.observability import trace_span

logger = logging.getLogger(__name__)

RESERVE_TABLE = "ReserveTable"
TODAYS_SPECIALTY = "TodaysSpecialty"
GET_DISCOUNTS = "GetDiscounts"
NONE_INTENT = "None"

AMOUNT_PEOPLE = "AmountPeople"
DATETIME = "datetime"


class IntentScore(BaseModel):
    name: str
    score: float = Field(ge=0.0, le=1.0)


class RecognitionResult(BaseModel):
    """Top intent plus extracted entities for one utterance."""

    text: str = ""
    top_intent: IntentScore
    entities: dict[str, list[Any]] = Field(default_factory=dict)

    def first_entity(self, name: str) -> Any:
        values = self.entities.get(name) or []
        return values[0] if values else None


class Recognizer(Protocol):
    def recognize(self, activity: Activity) -> RecognitionResult | None: ...


# Checked in this order; first match wins.
INTENT_PATTERNS: list[tuple[str, list[str]]] = [
    (RESERVE_TABLE, [r"\breserv", r"\bbook(ing)?\b", r"\btable for\b"]),
    (TODAYS_SPECIALTY, [r"\bspecial(s|ty|ties)?\b", r"\btoday'?s (menu|dish(es)?)\b"]),
    (GET_DISCOUNTS, [r"\bdiscounts?\b", r"\bpromotions?\b", r"\bdeals?\b", r"\boffers?\b"]),
]

PEOPLE_PATTERNS = [
    re.compile(r"\b(\d+)\s+(?:people|persons|guests|of us)\b"),
    re.compile(r"\b(?:for|party of)\s+(\d+)\b(?!\s*(?:am|pm|:|o'clock))"),
]

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
DAY_PATTERN = re.compile(r"\b(today|tonight|tomorrow|" + "|".join(WEEKDAYS) + r")\b")
CLOCK_12H = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b")
CLOCK_24H = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)\b")


class KeywordRecognizer:
    """Pattern-based recognizer. Resolves relative days against ``clock``."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def recognize(self, activity: Activity) -> RecognitionResult | None:
        text = (activity.text or "").strip()
        if not text:
            return None
        lowered = text.lower()

        intent = IntentScore(name=NONE_INTENT, score=1.0)
        for name, patterns in INTENT_PATTERNS:
            if any(re.search(p, lowered) for p in patterns):
                intent = IntentScore(name=name, score=0.9)
                break

        entities: dict[str, list[Any]] = {}
        people = self._amount_people(lowered)
        if people is not None:
            entities[AMOUNT_PEOPLE] = [people]
        timex = self._timex(lowered)
        if timex is not None:
            entities[DATETIME] = [{"timex": timex}]

        return RecognitionResult(text=text, top_intent=intent, entities=entities)

    def _amount_people(self, text: str) -> str | None:
        for pattern in PEOPLE_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None

    def _timex(self, text: str) -> str | None:
        day_match = DAY_PATTERN.search(text)
        clock = self._clock_time(text)
        if day_match is None and clock is None:
            return None

        today = self.clock().date()
        day = day_match.group(1) if day_match else "today"
        if day in ("today", "tonight"):
            date = today
        elif day == "tomorrow":
            date = today + timedelta(days=1)
        else:
            ahead = (WEEKDAYS.index(day) - today.weekday()) % 7 or 7
            date = today + timedelta(days=ahead)

        if clock is None:
            return date.isoformat()
        hour, minute = clock
        if minute:
            return f"{date.isoformat()}T{hour:02d}:{minute:02d}"
        return f"{date.isoformat()}T{hour:02d}"

    def _clock_time(self, text: str) -> tuple[int, int] | None:
        match = CLOCK_12H.search(text)
        if match:
            hour = int(match.group(1)) % 12
            if match.group(3) == "pm":
                hour += 12
            return hour, int(match.group(2) or 0)
        match = CLOCK_24H.search(text)
        if match:
            return int(match.group(1)), int(match.group(2))
        return None


LLM_INSTRUCTION = """You classify messages sent to a restaurant assistant.

Return a JSON object with exactly these keys:
- "intent": one of "ReserveTable", "TodaysSpecialty", "GetDiscounts", "None"
- "score": your confidence between 0 and 1
- "entities": an object that may contain
    "AmountPeople": a list with the number of guests as a string
    "datetime": a list with one object {{"timex": "YYYY-MM-DDTHH:MM"}}; omit the
                time part when no time was given

Today is {today}. Resolve relative days (tomorrow, friday) against it.
"""


class LlmRecognizer:
    """LLM-backed recognizer. Any failure is logged and reported as no result."""

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.model = model
        self.api_key = api_key
        self.circuit_breaker = circuit_breaker or CircuitBreaker(name="RecognizerCircuitBreaker")
        self.clock = clock

    def recognize(self, activity: Activity) -> RecognitionResult | None:
        text = (activity.text or "").strip()
        if not text:
            return None

        with trace_span("llm_recognize", conversation=activity.conversation_id):
            try:
                raw = self.circuit_breaker.call(self._complete, text)
                payload = json.loads(raw)
                return RecognitionResult(
                    text=text,
                    top_intent=IntentScore(
                        name=payload.get("intent") or NONE_INTENT,
                        score=float(payload.get("score", 0.0)),
                    ),
                    entities=payload.get("entities") or {},
                )
            except (json.JSONDecodeError, ValidationError, AttributeError, TypeError) as e:
                logger.warning(f"Unusable recognizer output: {e}")
                return None
            except Exception as e:
                logger.error(f"Recognizer call failed: {e}", exc_info=True)
                return None

    def _complete(self, text: str) -> str:
        response = litellm.completion(
            model=self.model,
            api_key=self.api_key,
            temperature=0,
            response_format={"type": "json_object"},
            messages=[
                {
                    "role": "system",
                    "content": LLM_INSTRUCTION.format(today=self.clock().date().isoformat()),
                },
                {"role": "user", "content": text},
            ],
        )
        return response.choices[0].message.content


def build_recognizer(config: Settings) -> Recognizer:
    """Create the recognizer selected by RECOGNIZER_BACKEND."""
    backend = config.recognizer_backend.lower()
    if backend == "keyword":
        return KeywordRecognizer()
    if backend == "llm":
        if not config.llm_api_key:
            raise ConfigurationError("RECOGNIZER_BACKEND=llm requires LLM_API_KEY")
        return LlmRecognizer(
            model=config.litellm_model,
            api_key=config.llm_api_key,
            circuit_breaker=CircuitBreaker(
                failure_threshold=config.circuit_breaker_failure_threshold,
                timeout=config.circuit_breaker_timeout,
                name="RecognizerCircuitBreaker",
            ),
        )
    raise ConfigurationError(f"Unknown RECOGNIZER_BACKEND: {config.recognizer_backend}")
