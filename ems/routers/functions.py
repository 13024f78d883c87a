"""
HTTP functions called by browser clients and schedulers.

These answer with bare JSON (``{generatedText}``, ``{error}``, ...) rather
than the ``ApiResponse`` envelope used by the rest of the API.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.config import settings
from ems.core.exceptions import AppException
from ems.database import get_db
from ems.routers.auth_deps import get_cache
from ems.schemas.functions import AttendanceNotificationRequest, ChatReply, ChatRequest
from ems.services.attendance_notifications import AttendanceNotificationJob, UnknownNotificationType
from ems.services.chat_ai import generate_reply

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/functions",
    tags=["functions"]
)


@router.post("/chat-with-ai", response_model=ChatReply)
def chat_with_ai(request: ChatRequest):
    try:
        return ChatReply(generatedText=generate_reply(request))
    except Exception as e:
        logger.error(f"Error in chat-with-ai function: {e}", exc_info=True)
        message = e.message if isinstance(e, AppException) else str(e)
        return JSONResponse(status_code=500, content={"error": message})


@router.post("/attendance-notifications")
def attendance_notifications(
    body: AttendanceNotificationRequest,
    x_function_key: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    cache: QueryCache = Depends(get_cache)
):
    if settings.functions_api_key and x_function_key != settings.functions_api_key:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    try:
        return AttendanceNotificationJob(db, cache).run(body.type, employee_id=body.employeeId, day=body.date)
    except UnknownNotificationType as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.error(f"Error in attendance-notifications function: {e}", exc_info=True)
        message = e.message if isinstance(e, AppException) else str(e)
        return JSONResponse(status_code=500, content={"error": message})
