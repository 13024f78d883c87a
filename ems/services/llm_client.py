import logging

import requests

from ems.core.config import settings
from ems.core.exceptions import AIKillSwitchError

logger = logging.getLogger(__name__)


def call_chat_completion(messages: list, temperature: float = None, max_tokens: int = None) -> str:
    """
    Call the configured chat-completion endpoint with the specified messages.

    Args:
        messages: List of message dictionaries with 'role' and 'content'
        temperature: Sampling temperature (defaults to settings.ai.temperature)
        max_tokens: Completion limit (defaults to settings.ai.max_tokens)

    Returns:
        str: The model's reply content

    Raises:
        AIKillSwitchError: If AI features are switched off.
        ValueError: If the API key is not configured.
        requests.HTTPError: If the API call fails.
    """
    if settings.ai.kill_switch:
        raise AIKillSwitchError()

    api_key = settings.ai.api_key
    if not api_key:
        raise ValueError("AI_API_KEY is not configured")

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    payload = {
        "model": settings.ai.model_name,
        "messages": messages,
        "max_tokens": max_tokens or settings.ai.max_tokens,
        "temperature": settings.ai.temperature if temperature is None else temperature,
    }

    response = requests.post(settings.ai.api_url, json=payload, headers=headers, timeout=settings.ai.request_timeout)
    if not response.ok:
        logger.error(f"Chat completion API error: {response.status_code} {response.text[:500]}")
    response.raise_for_status()
    return response.json()["choices"][0]["message"]["content"]
