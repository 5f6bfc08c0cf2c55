"""
Activity and card models exchanged with the chat channel.
"""

from enum import Enum

from pydantic import BaseModel, Field


class ActivityType(str, Enum):
    MESSAGE = "message"
    CONVERSATION_UPDATE = "conversationUpdate"


class CardImage(BaseModel):
    url: str


class CardAction(BaseModel):
    type: str = "showImage"
    title: str
    value: str
    image: str | None = None


class HeroCard(BaseModel):
    content_type: str = "application/vnd.microsoft.card.hero"
    images: list[CardImage] = Field(default_factory=list)
    buttons: list[CardAction] = Field(default_factory=list)


class Activity(BaseModel):
    """A single inbound or outbound chat activity."""

    type: ActivityType = ActivityType.MESSAGE
    conversation_id: str = ""
    text: str | None = None
    speak: str | None = Field(None, description="SSML markup for voice channels")
    attachments: list[HeroCard] = Field(default_factory=list)
    attachment_layout: str | None = None
    members_added: list[str] = Field(default_factory=list)
    recipient_id: str | None = None

    def is_bot_joined(self) -> bool:
        """True for the conversationUpdate announcing the bot itself joined."""
        return (
            self.type == ActivityType.CONVERSATION_UPDATE
            and bool(self.members_added)
            and self.members_added[0] == self.recipient_id
        )


def text_message(text: str, speak: str | None = None) -> Activity:
    return Activity(text=text, speak=speak)


def carousel(cards: list[HeroCard], text: str | None = None) -> Activity:
    return Activity(text=text, attachments=cards, attachment_layout="carousel")
