"""
FastAPI application serving the restaurant reservation bot.
Provides the channel endpoint plus monitoring endpoints.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from reservation_bot.bot import get_bot
from reservation_bot.config import settings
from reservation_bot.conversation_state import ReservationState
from reservation_bot.messages import Activity

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class TurnResponse(BaseModel):
    """Replies produced by one turn."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "conversation_id": "conv_123",
                "replies": [{"type": "message", "text": "When do you need the reservation?"}],
            }
        }
    )

    conversation_id: str = Field(..., description="Conversation identifier")
    replies: list[Activity] = Field(default_factory=list, description="Outbound activities")


class ReservationResponse(BaseModel):
    conversation_id: str
    time: str | None = None
    party_size: str | None = None
    full_name: str | None = None
    missing_fields: list[str]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    knowledge_base_circuit_breaker: dict


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the bot at startup so configuration errors stop the process."""
    logger.info("Starting Restaurant Reservation Bot API")
    logger.info(f"Environment: {settings.environment}")

    get_bot()
    logger.info("Bot initialized successfully")

    yield

    logger.info("Shutting down Restaurant Reservation Bot API")


app = FastAPI(
    title="Restaurant Reservation Bot API",
    description="Chat assistant that takes table reservations and answers restaurant questions",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"message": "Restaurant Reservation Bot API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Service status and knowledge base circuit breaker state."""
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        knowledge_base_circuit_breaker=get_bot().knowledge_base.get_circuit_breaker_state(),
    )


@app.get("/ready")
def ready():
    return {"status": "ready"}


@app.post("/api/messages", response_model=TurnResponse, tags=["Chat"])
def messages(activity: Activity):
    """
    Process one inbound activity for a conversation.

    Send a ``conversationUpdate`` with the bot in ``members_added`` to get the
    welcome message, then ``message`` activities:

    ```json
    {"type": "message", "conversation_id": "conv_1", "text": "book a table for 2 tomorrow 7pm"}
    ```

    State is kept per ``conversation_id`` between calls.
    """
    if not activity.conversation_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="conversation_id is required",
        )

    try:
        logger.info(f"Turn request: conversation={activity.conversation_id}")
        replies = get_bot().on_turn(activity)
        return TurnResponse(conversation_id=activity.conversation_id, replies=replies)

    except Exception as e:
        logger.error(f"Error in /api/messages endpoint: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred processing your message. Please try again.",
        ) from e


@app.get(
    "/conversations/{conversation_id}/reservation",
    response_model=ReservationResponse,
    tags=["Chat"],
)
def get_reservation(conversation_id: str):
    """Reservation collected so far. Unknown conversations return an empty one."""
    state: ReservationState = get_bot().get_reservation(conversation_id)
    return ReservationResponse(
        conversation_id=conversation_id,
        time=state.time,
        party_size=state.party_size,
        full_name=state.full_name,
        missing_fields=state.missing_fields(),
    )


@app.post("/reset-conversation/{conversation_id}", tags=["Chat"])
async def reset_conversation(conversation_id: str):
    """Forget all state for a conversation."""
    try:
        get_bot().reset_conversation(conversation_id)
        return {
            "message": f"Conversation reset for {conversation_id}",
            "conversation_id": conversation_id,
        }

    except Exception as e:
        logger.error(f"Error resetting conversation: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error resetting conversation"
        ) from e


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Active conversations and circuit breaker state."""
    bot = get_bot()

    return {
        "circuit_breaker": bot.knowledge_base.get_circuit_breaker_state(),
        "active_conversations": len(bot.sessions),
        "environment": settings.environment,
    }


if __name__ == "__main__":
    uvicorn.run(
        "reservation_bot.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
