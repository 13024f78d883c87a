from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.schemas import ApiResponse
from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_cache, get_current_user
from ems.schemas.notification import NotificationResponse
from ems.services.notification import NotificationService

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"]
)


def get_service(db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)) -> NotificationService:
    return NotificationService(db, cache)


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    unread_only: bool = False,
    service: NotificationService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    return service.list_mine(current_user.id, unread_only=unread_only)


@router.get("/unread-count")
def unread_count(
    service: NotificationService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    return {"count": service.unread_count(current_user.id)}


@router.post("/mark-all-read", response_model=ApiResponse[int])
def mark_all_read(
    service: NotificationService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    result = service.mark_all_read(current_user.id)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/{notification_id}/read", response_model=ApiResponse[NotificationResponse])
def mark_read(
    notification_id: int,
    service: NotificationService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    result = service.mark_read(current_user.id, notification_id)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/{notification_id}", response_model=ApiResponse[int])
def delete_notification(
    notification_id: int,
    service: NotificationService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    result = service.delete_own(current_user.id, notification_id)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("", response_model=ApiResponse[int])
def clear_notifications(
    service: NotificationService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    result = service.clear_all(current_user.id)
    return ApiResponse.ok(result.data, notice=result.notice)
