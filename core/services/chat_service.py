# =============================================================================
# core/services/chat_service.py - Character Chat & Gifts
# =============================================================================
# Talking to a character is two completions:
# 1. The in-character reply, prompted from personality + appearance
# 2. A one-word emotion classification of that reply (drives the avatar)
#
# Sessions (chat_sessions) are one per user per character and carry the
# relationship progress that gifts increase.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.llm import LLMError, chat_completion
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now_iso
from core.constants import (
    CHAT_FREQUENCY_PENALTY,
    CHAT_HISTORY_LIMIT,
    CHAT_MAX_TOKENS,
    CHAT_PRESENCE_PENALTY,
    CHAT_TEMPERATURE,
    DEFAULT_EMOTION,
    DEFAULT_GIFTS,
    EMOTIONS,
    GIFT_RELATIONSHIP_BOOST,
    MAX_RELATIONSHIP_PROGRESS,
)
from core.models.chat import HistoryMessage, MessageSender, MessageType
from core.models.monetization import CoinTransactionType
from core.services.character_service import CharacterService
from core.services.coin_service import CoinService
from core.services.interaction_service import InteractionService
from app.exceptions import ExternalServiceError, ResourceNotFoundError

logger = logging.getLogger(__name__)

EMOTION_PROMPT = (
    "Based on the following response, determine the character's current emotion. "
    f"Respond with just one word from: {', '.join(EMOTIONS)}"
)

CHAT_GUIDELINES = """IMPORTANT INSTRUCTIONS:
1. Stay in character at all times as {name}
2. Respond naturally and engagingly based on your personality
3. Match your speaking style and tone to your character profile
4. Be warm and personable, building rapport with the user
5. Reference your interests, hobbies, and background naturally in conversation
6. If the relationship style is romantic, be appropriately flirty within the flirtiness level
7. Show emotional depth and genuine interest in the user
8. Keep responses conversational and not too long
9. Remember previous context from the chat history
10. Never break character or mention that you're an AI"""


def _join(values: Any) -> str:
    if isinstance(values, list):
        return ", ".join(str(v) for v in values)
    return str(values or "")


def build_system_prompt(character: dict[str, Any]) -> str:
    """System prompt describing who the character is and how to behave."""
    name = character.get("name", "")
    prompt = f"You are {name}, an AI character. {character.get('description', '')}\n\n"

    personality = character.get("personality") or {}
    if personality:
        prompt += f"""PERSONALITY:
- Traits: {_join(personality.get("traits"))}
- Mood: {personality.get("mood", "")}
- Speaking Style: {personality.get("speakingStyle", "")}
- Tone: {personality.get("tone", "")}
- Occupation: {personality.get("occupation", "")}
- Relationship Style: {personality.get("relationshipStyle", "")}
- Flirtiness Level: {personality.get("flirtLevel", 0)}/10
- Affection Level: {personality.get("affectionLevel", 0)}/10

BACKGROUND:
{personality.get("backstory", "")}

INTERESTS & HOBBIES:
- Interests: {_join(personality.get("interests"))}
- Hobbies: {_join(personality.get("hobbies"))}

PREFERENCES:
- Likes: {_join(personality.get("likes"))}
- Dislikes: {_join(personality.get("dislikes"))}

CONVERSATION GUIDELINES:
- Favorite topics to discuss: {_join(personality.get("favoriteTopics"))}
- Topics to avoid: {_join(personality.get("avoidTopics"))}

"""

    attrs = character.get("physical_attributes") or {}
    if attrs:
        prompt += f"""PHYSICAL APPEARANCE (for reference in conversations):
- {attrs.get("age", "")} {attrs.get("ethnicity", "")} {attrs.get("gender", "")}
- {attrs.get("hairColor", "")} {attrs.get("hairLength", "")} {attrs.get("hairStyle", "")} hair
- {attrs.get("eyeColor", "")} eyes
- {attrs.get("fashionStyle", "")} fashion style

"""

    return prompt + CHAT_GUIDELINES.format(name=name)


def history_to_messages(history: list[HistoryMessage]) -> list[dict[str, str]]:
    """Last CHAT_HISTORY_LIMIT client messages in OpenAI format."""
    return [
        {
            "role": "user" if message.sender == MessageSender.USER else "assistant",
            "content": message.text,
        }
        for message in history[-CHAT_HISTORY_LIMIT:]
    ]


class ChatService:
    """
    Service for character conversations, sessions and gifts.
    """

    # -------------------------------------------------------------------------
    # Completions
    # -------------------------------------------------------------------------

    @staticmethod
    def classify_emotion(text: str) -> str:
        """One of EMOTIONS for a reply; DEFAULT_EMOTION when unclear."""
        try:
            label = chat_completion(
                [
                    {"role": "system", "content": EMOTION_PROMPT},
                    {"role": "user", "content": text},
                ],
                max_tokens=10,
            )
        except LLMError as e:
            logger.warning(f"Emotion classification failed: {e}")
            return DEFAULT_EMOTION

        label = label.strip().strip(".").lower()
        return label if label in EMOTIONS else DEFAULT_EMOTION

    @staticmethod
    def reply(
        user_id: UUID | str,
        character_id: str,
        message: str,
        history: list[HistoryMessage],
        session_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Generate the character's reply to a message.

        Returns:
            Dict with response, emotion, characterName

        Raises:
            CharacterNotFoundError: If the character isn't visible
            ExternalServiceError: If the completion fails
        """
        character = CharacterService.get_character(character_id, user_id)

        messages = [{"role": "system", "content": build_system_prompt(character)}]
        messages.extend(history_to_messages(history))
        messages.append({"role": "user", "content": message})

        try:
            response = chat_completion(
                messages,
                temperature=CHAT_TEMPERATURE,
                max_tokens=CHAT_MAX_TOKENS,
                presence_penalty=CHAT_PRESENCE_PENALTY,
                frequency_penalty=CHAT_FREQUENCY_PENALTY,
            )
        except LLMError as e:
            raise ExternalServiceError("OpenAI", str(e))

        emotion = ChatService.classify_emotion(response)

        if session_id:
            session = ChatService.get_session(session_id, user_id)
            ChatService.save_message(session["id"], character_id, user_id, MessageSender.USER, message)
            ChatService.save_message(
                session["id"], character_id, user_id, MessageSender.CHARACTER, response, emotion=emotion
            )

        InteractionService.record(user_id, character_id, "message_sent")

        return {
            "response": response,
            "emotion": emotion,
            "characterName": character.get("name"),
        }

    # -------------------------------------------------------------------------
    # Sessions & Messages
    # -------------------------------------------------------------------------

    @staticmethod
    def get_session(session_id: str, user_id: UUID | str) -> dict[str, Any]:
        """
        Raises:
            ResourceNotFoundError: If missing or owned by someone else
        """
        session = SupabaseClient.fetch_one("chat_sessions", id=session_id)
        if not session or str(session.get("user_id")) != normalize_uuid(user_id):
            raise ResourceNotFoundError("Chat session", session_id)
        return session

    @staticmethod
    def get_or_create_session(user_id: UUID | str, character_id: str) -> tuple[dict[str, Any], bool]:
        """
        The caller's session with a character.

        Returns:
            Tuple of (session, created)
        """
        user_id_str = normalize_uuid(user_id)
        session = SupabaseClient.fetch_one(
            "chat_sessions", user_id=user_id_str, character_id=character_id
        )
        if session:
            return session, False

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("chat_sessions")
                .insert({
                    "user_id": user_id_str,
                    "character_id": character_id,
                    "relationship_progress": 0,
                })
                .execute()
            )
            session = response.data[0]
            logger.info(f"Created chat session {session['id']} for {user_id_str}")
            return session, True

        except Exception as e:
            logger.error(f"Failed to create chat session: {e}")
            raise

    @staticmethod
    def save_message(
        session_id: str,
        character_id: str,
        user_id: UUID | str,
        sender: MessageSender,
        text: str,
        emotion: str | None = None,
        message_type: MessageType = MessageType.TEXT,
        gift_id: str | None = None,
    ) -> dict[str, Any]:
        client = SupabaseClient.get_client()

        row = {
            "session_id": session_id,
            "character_id": character_id,
            "user_id": normalize_uuid(user_id),
            "sender": sender.value,
            "text": text,
            "message_type": message_type.value,
        }
        if emotion:
            row["emotion"] = emotion
        if gift_id:
            row["gift_id"] = gift_id

        response = client.table("chat_messages").insert(row).execute()
        return response.data[0] if response.data else row

    @staticmethod
    def list_messages(session_id: str, user_id: UUID | str) -> list[dict[str, Any]]:
        """A session's messages in chronological order."""
        ChatService.get_session(session_id, user_id)
        client = SupabaseClient.get_client()

        response = (
            client.table("chat_messages")
            .select("*")
            .eq("session_id", session_id)
            .order("created_at")
            .execute()
        )
        return response.data or []

    @staticmethod
    def default_greeting(character: dict[str, Any]) -> str:
        occupation = (character.get("personality") or {}).get("occupation")
        intro = f"Hey there! I'm {character.get('name')}"
        if occupation:
            intro += f", {occupation}"
        return intro + ". I'm so glad you stopped by. What's on your mind today?"

    @staticmethod
    def init_session(
        user_id: UUID | str,
        character_id: str,
        greeting_text: str | None = None,
        emotion: str | None = None,
    ) -> dict[str, Any]:
        """
        Open the caller's session and seed the greeting if it's empty.

        Returns:
            Dict with session, messages, isNew
        """
        character = CharacterService.get_character(character_id, user_id)
        session, created = ChatService.get_or_create_session(user_id, character_id)

        messages = [] if created else ChatService.list_messages(session["id"], user_id)
        if messages:
            return {"session": session, "messages": messages, "isNew": False}

        if not greeting_text:
            settings_row = SupabaseClient.fetch_one(
                "character_monetization", columns="welcome_message", character_id=character_id
            )
            greeting_text = (settings_row or {}).get("welcome_message") or ChatService.default_greeting(character)

        greeting = ChatService.save_message(
            session["id"],
            character_id,
            user_id,
            MessageSender.CHARACTER,
            greeting_text,
            emotion=emotion or DEFAULT_EMOTION,
        )
        return {"session": session, "messages": [greeting], "isNew": True}

    # -------------------------------------------------------------------------
    # Gifts
    # -------------------------------------------------------------------------

    @staticmethod
    def _normalize_gift(row: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": str(row.get("id")),
            "name": row.get("display_name") or row.get("name"),
            "emoji": row.get("emoji", ""),
            "coin_cost": int(row.get("coin_cost") or 0),
            "description": row.get("description"),
        }

    @staticmethod
    def list_gifts() -> list[dict[str, Any]]:
        """Active gift types by cost, or the default catalogue."""
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("gift_types")
                .select("*")
                .eq("is_active", True)
                .order("coin_cost")
                .execute()
            )
            rows = response.data or []
        except Exception as e:
            logger.warning(f"Falling back to default gifts: {e}")
            rows = []

        return [ChatService._normalize_gift(row) for row in rows or DEFAULT_GIFTS]

    @staticmethod
    def get_gift(gift_id: str) -> dict[str, Any]:
        """
        Raises:
            ResourceNotFoundError: If the gift doesn't exist
        """
        for gift in ChatService.list_gifts():
            if gift["id"] == gift_id:
                return gift
        default = next((g for g in DEFAULT_GIFTS if g["id"] == gift_id), None)
        if default is None:
            raise ResourceNotFoundError("Gift", gift_id)
        return ChatService._normalize_gift(default)

    @staticmethod
    def gift_reaction(character: dict[str, Any], gift: dict[str, Any], message: str | None) -> str:
        """In-character thank-you for a gift, with a canned fallback."""
        fallback = f"Thank you so much for the {gift['name']}! {gift['emoji']} That's so sweet of you!"

        personality = character.get("personality") or {}
        prompt = f"You are {character.get('name')}. {character.get('description', '')}"
        if personality:
            prompt += (
                f" Your personality traits are: {_join(personality.get('traits'))}."
                f" Your speaking style is {personality.get('speakingStyle', '')}"
                f" and your tone is {personality.get('tone', '')}."
            )
        note = f' with the message: "{message}"' if message else ""
        prompt += (
            f"\n\nSomeone just sent you a {gift['name']} {gift['emoji']} as a gift{note}. "
            "React with genuine emotion and gratitude in character. Keep it brief (1-2 sentences)."
        )

        try:
            return chat_completion(
                [
                    {"role": "system", "content": prompt},
                    {"role": "user", "content": f"I'm sending you a {gift['name']} {gift['emoji']}!{' ' + message if message else ''}"},
                ],
                temperature=CHAT_TEMPERATURE,
                max_tokens=100,
            )
        except LLMError as e:
            logger.warning(f"Gift reaction failed, using canned reply: {e}")
            return fallback

    @staticmethod
    def send_gift(
        user_id: UUID | str,
        character_id: str,
        gift_id: str,
        message: str | None = None,
        session_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Spend coins on a gift and record the exchange in the chat.

        The gift and session are resolved before coins are charged; saving
        the gift and messages afterwards is best-effort.

        Returns:
            Dict with success, reaction, emotion, newBalance, relationshipProgress

        Raises:
            InsufficientCoinsError: If the caller can't afford the gift
            ResourceNotFoundError: Unknown gift, or a session that is not the
                caller's chat with this character
        """
        character = CharacterService.get_character(character_id, user_id)
        gift = ChatService.get_gift(gift_id)

        if session_id:
            session = ChatService.get_session(session_id, user_id)
            if session.get("character_id") != character_id:
                raise ResourceNotFoundError("Chat session", session_id)
        else:
            session, _ = ChatService.get_or_create_session(user_id, character_id)

        deduction = CoinService.deduct(
            user_id,
            gift["coin_cost"],
            CoinTransactionType.GIFT,
            reference_type="chat_gift",
            reference_id=character_id,
            description=f"Gift ({gift['name']}) to {character.get('name')}",
        )

        reaction = ChatService.gift_reaction(character, gift, message)
        emotion = ChatService.classify_emotion(reaction)

        progress = min(
            int(session.get("relationship_progress") or 0) + GIFT_RELATIONSHIP_BOOST,
            MAX_RELATIONSHIP_PROGRESS,
        )
        client = SupabaseClient.get_client()

        try:
            gift_row = (
                client.table("chat_gifts")
                .insert({
                    "session_id": session["id"],
                    "character_id": character_id,
                    "user_id": normalize_uuid(user_id),
                    "gift_type": gift["id"],
                    "gift_name": gift["name"],
                    "coin_cost": gift["coin_cost"],
                    "message": message,
                    "character_response": reaction,
                })
                .execute()
            ).data
            saved_gift_id = gift_row[0]["id"] if gift_row else None

            ChatService.save_message(
                session["id"],
                character_id,
                user_id,
                MessageSender.USER,
                f"Sent a {gift['name']} {gift['emoji']}{': ' + message if message else ''}",
                message_type=MessageType.GIFT,
                gift_id=saved_gift_id,
            )
            ChatService.save_message(
                session["id"], character_id, user_id, MessageSender.CHARACTER, reaction, emotion=emotion
            )
            (
                client.table("chat_sessions")
                .update({"relationship_progress": progress, "updated_at": utc_now_iso()})
                .eq("id", session["id"])
                .execute()
            )
        except Exception as e:
            logger.warning(f"Gift charged but not fully saved for session {session['id']}: {e}")

        InteractionService.record(user_id, character_id, "gift_sent", {"gift": gift["id"]})

        return {
            "success": True,
            "reaction": reaction,
            "emotion": emotion,
            "coinCost": gift["coin_cost"],
            "newBalance": deduction.get("new_balance"),
            "relationshipProgress": progress,
        }
