"""
Turn-scoped execution context.

One TurnContext is created per inbound activity. It carries the activity,
collects every reply sent during the turn, and answers the one question the
controller needs after resuming a dialog: did anything respond already?
"""

from __future__ import annotations

import logging

from reservation_bot.messages import Activity, text_message

logger = logging.getLogger(__name__)


class TurnContext:
    def __init__(self, activity: Activity):
        self.activity = activity
        self.replies: list[Activity] = []

    @property
    def conversation_id(self) -> str:
        return self.activity.conversation_id

    @property
    def text(self) -> str:
        return self.activity.text or ""

    @property
    def responded(self) -> bool:
        """Whether at least one reply was sent this turn."""
        return len(self.replies) > 0

    def send(self, message: str | Activity, speak: str | None = None) -> Activity:
        """Queue a reply. Plain strings become text messages."""
        activity = message if isinstance(message, Activity) else text_message(message, speak)
        activity = activity.model_copy(update={"conversation_id": self.conversation_id})
        self.replies.append(activity)
        logger.debug(f"Reply queued for {self.conversation_id}: {activity.text!r}")
        return activity

