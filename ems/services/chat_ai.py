"""
Chat proxy: turns a transcript into a chat-completion call.

Image attachments on a message are sent as ``image_url`` parts; other
attachment types are accepted but not forwarded.
"""
import logging
from typing import Any, Dict, List

from ems.core.prompts import CHAT_ASSISTANT_SYSTEM
from ems.schemas.functions import ChatFile, ChatMessage, ChatRequest
from ems.services.llm_client import call_chat_completion

logger = logging.getLogger(__name__)


def _data_url(file: ChatFile) -> str:
    if file.data.startswith("data:"):
        return file.data
    return f"data:{file.type};base64,{file.data}"


def format_message(message: ChatMessage) -> Dict[str, Any]:
    if not message.files:
        return {"role": message.role, "content": message.content}
    content: List[Dict[str, Any]] = [{"type": "text", "text": message.content}]
    for file in message.files:
        if file.type.startswith("image/"):
            content.append({"type": "image_url", "image_url": {"url": _data_url(file)}})
    return {"role": message.role, "content": content}


def build_messages(request: ChatRequest) -> List[Dict[str, Any]]:
    return [{"role": "system", "content": CHAT_ASSISTANT_SYSTEM}] + [
        format_message(message) for message in request.messages
    ]


def generate_reply(request: ChatRequest) -> str:
    file_count = len(request.files or [])
    logger.info(f"Processing chat request with {len(request.messages)} messages and {file_count} files")
    reply = call_chat_completion(build_messages(request))
    logger.info("Chat completion received")
    return reply
