"""
Request/response bodies of the two HTTP functions.

Field names are camelCase to match what browser clients send.
"""
import datetime as dt
from pydantic import BaseModel, Field
from typing import List, Optional


class ChatFile(BaseModel):
    name: str
    type: str
    size: int = 0
    data: str  # base64, without the data: prefix


class ChatMessage(BaseModel):
    role: str
    content: str = ""
    files: Optional[List[ChatFile]] = None


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    files: Optional[List[ChatFile]] = None


class ChatReply(BaseModel):
    generatedText: str


class AttendanceNotificationRequest(BaseModel):
    type: str
    employeeId: Optional[int] = None
    date: Optional[dt.date] = None
