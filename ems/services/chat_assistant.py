"""
Client-side chat transcript.

Keeps the conversation, validates attachments before they are sent, and
turns proxy failures into a fixed apology instead of surfacing raw errors.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests

from ems.core.config import settings
from ems.core.prompts import CHAT_APOLOGY, CHAT_EMPTY_REPLY, CHAT_FILES_ONLY_PROMPT, CHAT_GREETING
from ems.core.schemas import Notice
from ems.schemas.functions import ChatFile, ChatRequest
from ems.services.chat_ai import generate_reply

logger = logging.getLogger(__name__)

Transport = Callable[[Dict[str, Any]], Dict[str, Any]]


def local_transport(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Call the chat proxy in-process."""
    return {"generatedText": generate_reply(ChatRequest.model_validate(payload))}


def http_transport(url: str, timeout: int = 60) -> Transport:
    """Call a deployed chat proxy over HTTP."""
    def send(payload: Dict[str, Any]) -> Dict[str, Any]:
        response = requests.post(url, json=payload, timeout=timeout)
        if not response.ok:
            try:
                message = response.json().get("error")
            except ValueError:
                # Gateways in front of the proxy answer with HTML
                message = None
            raise RuntimeError(message or f"Chat proxy returned {response.status_code}")
        data = response.json()
        if "error" in data:
            raise RuntimeError(data["error"])
        return data
    return send


@dataclass
class ChatEntry:
    text: str
    sender: str  # "user" | "bot"
    files: Optional[List[ChatFile]] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)


class ChatAssistant:
    def __init__(self, transport: Transport = local_transport):
        self.transport = transport
        self.messages: List[ChatEntry] = [ChatEntry(text=CHAT_GREETING, sender="bot")]
        self.selected_files: List[ChatFile] = []
        self.notices: List[Notice] = []
        self.is_loading = False

    def attach(self, name: str, type: str, size: int, data: str) -> bool:
        if size > settings.chat.max_file_size:
            limit_mb = settings.chat.max_file_size // (1024 * 1024)
            self.notices.append(Notice.error("File too large", f"{name} exceeds {limit_mb}MB limit"))
            return False
        if type not in settings.chat.allowed_file_types:
            self.notices.append(Notice.error("Unsupported file type", f"{name} is not a supported file type"))
            return False
        self.selected_files.append(ChatFile(name=name, type=type, size=size, data=data))
        return True

    def remove_file(self, index: int):
        if 0 <= index < len(self.selected_files):
            self.selected_files.pop(index)

    def send(self, text: str = "") -> Optional[ChatEntry]:
        text = (text or "").strip()
        if not text and not self.selected_files:
            return None

        files = list(self.selected_files) or None
        history = [
            {
                "role": "user" if entry.sender == "user" else "assistant",
                "content": entry.text,
                "files": [f.model_dump() for f in entry.files] if entry.files else None,
            }
            for entry in self.messages
        ]
        current = {
            "role": "user",
            "content": text or CHAT_FILES_ONLY_PROMPT,
            "files": [f.model_dump() for f in files] if files else None,
        }
        self.messages.append(ChatEntry(text=text or "Sent file(s)", sender="user", files=files))
        self.selected_files = []
        self.is_loading = True

        try:
            data = self.transport({
                "messages": history + [current],
                "files": current["files"],
            })
            reply = ChatEntry(text=data.get("generatedText") or CHAT_EMPTY_REPLY, sender="bot")
        except Exception as e:
            logger.error(f"Error calling AI: {e}", exc_info=True)
            self.notices.append(Notice.error("Error", "Failed to get AI response. Please try again."))
            reply = ChatEntry(text=CHAT_APOLOGY, sender="bot")
        finally:
            self.is_loading = False

        self.messages.append(reply)
        return reply
