# =============================================================================
# lib/llm.py - OpenAI Chat Completion Helpers
# =============================================================================
# Thin wrapper around the OpenAI client used by character chat, gift
# reactions, tag generation and creative content prompts.
#
# The client is created lazily so importing this module never requires
# network access or a valid key.
# =============================================================================

import json
import logging
from typing import Any

from app.config import settings

logger = logging.getLogger(__name__)

# Lazy-loaded OpenAI client
_client = None


class LLMError(Exception):
    """Raised when a completion fails or returns unusable content."""


def get_openai_client():
    """Get or create OpenAI client (lazy initialization)."""
    global _client
    if _client is None:
        from openai import OpenAI
        _client = OpenAI(api_key=settings.OPENAI_API_KEY)
    return _client


def chat_completion(
    messages: list[dict[str, str]],
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 500,
    presence_penalty: float | None = None,
    frequency_penalty: float | None = None,
    json_mode: bool = False,
) -> str:
    """
    Run a chat completion and return the assistant text.

    Args:
        messages: OpenAI-format messages (role/content dicts)
        model: Model name (defaults to settings.OPENAI_MODEL)
        temperature: Sampling temperature
        max_tokens: Completion token limit
        presence_penalty: Optional presence penalty
        frequency_penalty: Optional frequency penalty
        json_mode: Request a JSON object response

    Returns:
        The stripped completion text

    Raises:
        LLMError: If the API call fails or returns no content
    """
    kwargs: dict[str, Any] = {
        "model": model or settings.OPENAI_MODEL,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if presence_penalty is not None:
        kwargs["presence_penalty"] = presence_penalty
    if frequency_penalty is not None:
        kwargs["frequency_penalty"] = frequency_penalty
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = get_openai_client().chat.completions.create(**kwargs)
    except Exception as e:
        logger.error(f"OpenAI completion failed: {e}")
        raise LLMError(str(e)) from e

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise LLMError("Empty completion")

    return content.strip()


def json_completion(
    messages: list[dict[str, str]],
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 500,
) -> dict[str, Any]:
    """
    Run a JSON-mode completion and parse the result.

    Raises:
        LLMError: If the call fails or the content is not a JSON object
    """
    content = chat_completion(
        messages,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        json_mode=True,
    )

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise LLMError(f"Invalid JSON from model: {e}") from e

    if not isinstance(parsed, dict):
        raise LLMError("Model returned JSON that is not an object")
    return parsed
