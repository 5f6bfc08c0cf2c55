"""
Turn controller for the restaurant assistant.
"""

import logging

from data.restaurant_content import FALLBACK_MESSAGE, WELCOME_MESSAGE
from reservation_bot.config import ConfigurationError, settings
from reservation_bot.conversation_state import ConversationSession, DialogStatus
from reservation_bot.dialog import ReservationDialog
from reservation_bot.knowledge_base import InMemoryKnowledgeBase, KnowledgeBase, KnowledgeBaseClient
from reservation_bot.messages import Activity, ActivityType
from reservation_bot.observability import trace_span
from reservation_bot.recognizer import Recognizer, build_recognizer
from reservation_bot.router import Continue, Fallback, IntentRouter, Reply, StartDialog
from reservation_bot.session_store import SessionStore
from reservation_bot.speech import SsmlGenerator
from reservation_bot.turn_context import TurnContext

logger = logging.getLogger(__name__)


class RestaurantBot:
    """
    Handles one inbound activity per call.

    Turn order:
    1. bot joined the conversation -> welcome and stop
    2. resume the reservation dialog if one is waiting
    3. nothing replied and nothing waiting -> recognize and route
    4. save the conversation, whatever happened above
    """

    def __init__(
        self,
        recognizer: Recognizer | None,
        knowledge_base: KnowledgeBase | KnowledgeBaseClient | None,
        sessions: SessionStore | None = None,
        router: IntentRouter | None = None,
        ssml: SsmlGenerator | None = None,
        language: str | None = None,
    ):
        if recognizer is None:
            raise ConfigurationError("A recognizer is required")
        if knowledge_base is None:
            raise ConfigurationError("A knowledge base is required")

        self.recognizer = recognizer
        if not isinstance(knowledge_base, KnowledgeBaseClient):
            knowledge_base = KnowledgeBaseClient(knowledge_base)
        self.knowledge_base = knowledge_base
        self.sessions = sessions if sessions is not None else SessionStore()
        self.router = router or IntentRouter(
            site_url=settings.site_url, min_score=settings.recognizer_min_score
        )
        self.language = language or settings.voice_font_language
        self.ssml = ssml
        self.dialog = ReservationDialog(ssml=ssml, language=self.language)

        logger.info("RestaurantBot initialized")

    def on_turn(self, activity: Activity) -> list[Activity]:
        """Process one activity and return the replies it produced."""
        turn = TurnContext(activity)
        cid = activity.conversation_id

        with trace_span("turn", conversation=cid, type=activity.type.value):
            with self.sessions.lock(cid):
                try:
                    if activity.is_bot_joined():
                        self._say(turn, WELCOME_MESSAGE)
                    elif activity.type == ActivityType.MESSAGE:
                        self._handle_message(turn, self.sessions.get(cid))
                    else:
                        logger.debug(f"Ignoring {activity.type.value} activity for {cid}")
                finally:
                    self.sessions.save(cid)

        return turn.replies

    def _handle_message(self, turn: TurnContext, session: ConversationSession) -> None:
        result = self.dialog.continue_dialog(turn, session)
        if turn.responded:
            return

        if result.status == DialogStatus.EMPTY:
            self._route(turn, session)
        elif result.status == DialogStatus.WAITING:
            pass
        elif result.status == DialogStatus.COMPLETE:
            self.dialog.end(session)
        else:
            self.dialog.cancel_all(session)

    def _route(self, turn: TurnContext, session: ConversationSession) -> None:
        with trace_span("recognize", conversation=session.conversation_id):
            recognition = self.recognizer.recognize(turn.activity)

        action = self.router.route(recognition, dialog_active=session.dialog.is_active)

        if isinstance(action, Reply):
            turn.send(action.activity)
        elif isinstance(action, StartDialog):
            for slot, value in action.seed.items():
                self.sessions.set_slot(session.conversation_id, slot, value)
            self.dialog.begin(turn, session)
        elif isinstance(action, Fallback):
            self._answer_from_knowledge_base(turn)
        elif isinstance(action, Continue):
            pass

    def _answer_from_knowledge_base(self, turn: TurnContext) -> None:
        answers = self.knowledge_base.get_answers(turn.text)
        if answers:
            turn.send(answers[0].answer)
        else:
            turn.send(FALLBACK_MESSAGE)

    def _say(self, turn: TurnContext, text: str) -> None:
        speak = self.ssml.generate(text, self.language) if self.ssml else None
        turn.send(text, speak=speak)

    def get_reservation(self, conversation_id: str):
        """Current reservation for a conversation; a fresh one for unknown ids."""
        with self.sessions.lock(conversation_id):
            return self.sessions.get_reservation(conversation_id)

    def reset_conversation(self, conversation_id: str) -> None:
        """Forget a conversation. Waits for any turn in progress to finish first."""
        with self.sessions.lock(conversation_id):
            self.sessions.reset(conversation_id)


# Global bot instance
restaurant_bot = None


def get_bot() -> RestaurantBot:
    """Get or create the global bot wired from settings."""
    global restaurant_bot
    if restaurant_bot is None:
        restaurant_bot = RestaurantBot(
            recognizer=build_recognizer(settings),
            knowledge_base=InMemoryKnowledgeBase(),
            ssml=SsmlGenerator(settings.voice_font_name, settings.voice_font_language),
        )
    return restaurant_bot
