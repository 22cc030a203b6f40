# =============================================================================
# app/routers/chat.py - Character Chat Endpoints
# =============================================================================
# POST /chat             - in-character reply with emotion
# POST /chat/init        - open or reuse a chat session
# GET  /chat/sessions/.. - session history
# GET  /chat/gifts       - gift catalogue (public)
# POST /chat/gifts       - send a gift for coins
# =============================================================================

from fastapi import APIRouter, Depends

from app.auth import AuthUser, get_current_user
from core.models.chat import ChatInitRequest, ChatRequest, GiftRequest
from core.services.chat_service import ChatService

router = APIRouter()


@router.post("")
def send_message(request: ChatRequest, user: AuthUser = Depends(get_current_user)):
    """
    Reply as the character.

    Returns:
        {response, emotion, characterName}
    """
    return ChatService.reply(
        user.id,
        request.character_id,
        request.message,
        request.history,
        session_id=request.session_id,
    )


@router.post("/init")
def init_chat(request: ChatInitRequest, user: AuthUser = Depends(get_current_user)):
    return ChatService.init_session(
        user.id,
        request.character_id,
        greeting_text=request.greeting_text,
        emotion=request.emotion,
    )


@router.get("/sessions/{session_id}/messages")
def list_messages(session_id: str, user: AuthUser = Depends(get_current_user)):
    return {"messages": ChatService.list_messages(session_id, user.id)}


@router.get("/gifts")
def list_gifts():
    """Active gifts ordered by cost."""
    return {"gifts": ChatService.list_gifts()}


@router.post("/gifts")
def send_gift(request: GiftRequest, user: AuthUser = Depends(get_current_user)):
    """
    Send a gift to a character.

    Deducts the gift's coin cost; 402 when the balance is too low.
    """
    return ChatService.send_gift(
        user.id,
        request.character_id,
        request.gift_id,
        message=request.message,
        session_id=request.session_id,
    )
