# =============================================================================
# core/models/chat.py - Character Chat Schemas
# =============================================================================
# Requests for talking to a character and sending it gifts.
#
# Flow:
# 1. POST /chat/init creates (or reuses) a session and its greeting
# 2. POST /chat sends a message with recent history, gets reply + emotion
# 3. POST /chat/gifts spends coins on a gift and gets an in-character reaction
# =============================================================================

from enum import Enum

from pydantic import Field

from .base import CamelModel


class MessageSender(str, Enum):
    """Who sent a chat message."""
    USER = "user"
    CHARACTER = "character"


class MessageType(str, Enum):
    TEXT = "text"
    GIFT = "gift"
    IMAGE = "image"


class HistoryMessage(CamelModel):
    """One prior message supplied by the client for context."""
    sender: MessageSender
    text: str


class ChatRequest(CamelModel):
    """
    Schema for sending a chat message.

    Example:
        {"characterId": "550e...", "message": "How was your day?", "history": []}
    """

    character_id: str
    message: str = Field(..., min_length=1, max_length=4000)
    history: list[HistoryMessage] = Field(default_factory=list)
    session_id: str | None = Field(default=None, description="Persist both messages to this session")


class ChatInitRequest(CamelModel):
    """
    Open (or reuse) the caller's session with a character.

    When greeting_text is omitted the greeting comes from the character's
    welcome message, or a generated default.
    """

    character_id: str
    greeting_text: str | None = Field(default=None, max_length=2000)
    emotion: str | None = None


class GiftRequest(CamelModel):
    """Send a gift to a character during chat."""

    character_id: str
    gift_id: str
    message: str | None = Field(default=None, max_length=500)
    session_id: str | None = None
