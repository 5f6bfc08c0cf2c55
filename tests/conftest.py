"""
Pytest configuration and fixtures.
Shared bot wiring with a frozen clock so relative days are deterministic.
"""

from datetime import datetime

import pytest

from reservation_bot.bot import RestaurantBot
from reservation_bot.knowledge_base import InMemoryKnowledgeBase
from reservation_bot.messages import Activity, ActivityType
from reservation_bot.recognizer import KeywordRecognizer
from reservation_bot.router import IntentRouter
from reservation_bot.session_store import SessionStore
from reservation_bot.speech import SsmlGenerator

# A Friday.
FIXED_NOW = datetime(2026, 10, 16, 12, 0)
SITE_URL = "https://restaurant.example.test"


@pytest.fixture
def site_url():
    return SITE_URL


@pytest.fixture
def clock():
    """Frozen clock used by recognizer and router."""
    return lambda: FIXED_NOW


@pytest.fixture
def session_store():
    return SessionStore(max_sessions=100, ttl_seconds=3600)


@pytest.fixture
def bot(clock, session_store):
    """Bot wired with local collaborators only."""
    return RestaurantBot(
        recognizer=KeywordRecognizer(clock=clock),
        knowledge_base=InMemoryKnowledgeBase(min_confidence=0.3),
        sessions=session_store,
        router=IntentRouter(site_url=SITE_URL, min_score=0.5, clock=clock),
        ssml=SsmlGenerator("TestVoice", "en-US"),
    )


@pytest.fixture
def message():
    """Build inbound message activities."""

    def _message(text: str, conversation_id: str = "conv_1") -> Activity:
        return Activity(type=ActivityType.MESSAGE, conversation_id=conversation_id, text=text)

    return _message
