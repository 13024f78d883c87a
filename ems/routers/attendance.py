from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.schemas import ApiResponse
from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_cache, get_current_user, require_admin
from ems.schemas.attendance import (
    AttendanceDayStats,
    AttendanceResponse,
    AttendanceUpdate,
    ClockInRequest,
    MyAttendanceStats,
)
from ems.services.attendance import AttendanceService

router = APIRouter(
    prefix="/attendance",
    tags=["attendance"]
)


def get_service(db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)) -> AttendanceService:
    return AttendanceService(db, cache)


@router.get("", response_model=List[AttendanceResponse])
def list_attendance(
    service: AttendanceService = Depends(get_service),
    _: User = Depends(require_admin())
):
    return service.list_all()


@router.get("/stats", response_model=AttendanceDayStats)
def attendance_day_stats(
    day: Optional[date] = None,
    service: AttendanceService = Depends(get_service),
    _: User = Depends(require_admin())
):
    return service.day_stats(day or date.today())


@router.get("/me", response_model=List[AttendanceResponse])
def list_my_attendance(
    service: AttendanceService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    return service.list_mine(current_user.id)


@router.get("/me/stats", response_model=MyAttendanceStats)
def my_attendance_stats(
    service: AttendanceService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    return service.my_stats(current_user.id, date.today())


@router.post("/clock-in", response_model=ApiResponse[AttendanceResponse], status_code=status.HTTP_201_CREATED)
def clock_in(
    body: ClockInRequest = ClockInRequest(),
    service: AttendanceService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    result = service.clock_in(current_user.id, datetime.now(), body.notes)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.post("/{record_id}/clock-out", response_model=ApiResponse[AttendanceResponse])
def clock_out(
    record_id: int,
    body: ClockInRequest = ClockInRequest(),
    service: AttendanceService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    result = service.clock_out(current_user.id, record_id, datetime.now(), body.notes)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/{record_id}", response_model=ApiResponse[AttendanceResponse])
def update_attendance(
    record_id: int,
    data: AttendanceUpdate,
    service: AttendanceService = Depends(get_service),
    _: User = Depends(require_admin())
):
    result = service.update_record(record_id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/{record_id}", response_model=ApiResponse[int])
def delete_attendance(
    record_id: int,
    service: AttendanceService = Depends(get_service),
    _: User = Depends(require_admin())
):
    result = service.delete_record(record_id)
    return ApiResponse.ok(result.data, notice=result.notice)
