from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.exceptions import NotFoundError
from ems.core.schemas import ApiResponse
from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_cache, get_current_user, require_admin
from ems.schemas.leave import (
    HolidayCreate,
    HolidayResponse,
    HolidayUpdate,
    LeaveBalanceCreate,
    LeaveBalanceMap,
    LeaveBalanceResponse,
    LeaveBalanceUpdate,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveReview,
    LeaveTypeCreate,
    LeaveTypeResponse,
    LeaveTypeUpdate,
)
from ems.services.leave import HolidayService, LeaveBalanceService, LeaveRequestService, LeaveTypeService

router = APIRouter(
    prefix="/leave",
    tags=["leave"]
)


def _services(db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)):
    return db, cache


# --- Leave types ---

@router.get("/types", response_model=List[LeaveTypeResponse])
def list_leave_types(deps=Depends(_services), _: User = Depends(get_current_user)):
    return LeaveTypeService(*deps).list_active()


@router.post("/types", response_model=ApiResponse[LeaveTypeResponse], status_code=status.HTTP_201_CREATED)
def create_leave_type(data: LeaveTypeCreate, deps=Depends(_services), _: User = Depends(require_admin())):
    result = LeaveTypeService(*deps).create_type(data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/types/{type_id}", response_model=ApiResponse[LeaveTypeResponse])
def update_leave_type(type_id: int, data: LeaveTypeUpdate, deps=Depends(_services), _: User = Depends(require_admin())):
    result = LeaveTypeService(*deps).update_type(type_id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/types/{type_id}", response_model=ApiResponse[LeaveTypeResponse])
def deactivate_leave_type(type_id: int, deps=Depends(_services), _: User = Depends(require_admin())):
    result = LeaveTypeService(*deps).deactivate(type_id)
    return ApiResponse.ok(result.data, notice=result.notice)


# --- Balances ---

@router.get("/balances", response_model=List[LeaveBalanceResponse])
def list_leave_balances(year: Optional[int] = None, deps=Depends(_services), _: User = Depends(require_admin())):
    return LeaveBalanceService(*deps).list_for_year(year or date.today().year)


@router.get("/balances/me", response_model=List[LeaveBalanceResponse])
def list_my_leave_balances(deps=Depends(_services), current_user: User = Depends(get_current_user)):
    return LeaveBalanceService(*deps).list_mine(current_user.id, date.today().year)


@router.get("/balances/me/summary", response_model=LeaveBalanceMap)
def my_leave_balance_summary(deps=Depends(_services), current_user: User = Depends(get_current_user)):
    return LeaveBalanceService(*deps).balance_map(current_user.id, date.today().year)


@router.post("/balances", response_model=ApiResponse[LeaveBalanceResponse], status_code=status.HTTP_201_CREATED)
def create_leave_balance(data: LeaveBalanceCreate, deps=Depends(_services), _: User = Depends(require_admin())):
    result = LeaveBalanceService(*deps).create_balance(data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/balances/{balance_id}", response_model=ApiResponse[LeaveBalanceResponse])
def update_leave_balance(
    balance_id: int, data: LeaveBalanceUpdate, deps=Depends(_services), _: User = Depends(require_admin())
):
    result = LeaveBalanceService(*deps).update_balance(balance_id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


# --- Requests ---

@router.get("/requests", response_model=List[LeaveRequestResponse])
def list_leave_requests(status: Optional[str] = None, deps=Depends(_services), _: User = Depends(require_admin())):
    return LeaveRequestService(*deps).list_all(status)


@router.get("/requests/me", response_model=List[LeaveRequestResponse])
def list_my_leave_requests(deps=Depends(_services), current_user: User = Depends(get_current_user)):
    return LeaveRequestService(*deps).list_mine(current_user.id)


@router.post("/requests", response_model=ApiResponse[LeaveRequestResponse], status_code=201)
def submit_leave_request(data: LeaveRequestCreate, deps=Depends(_services), current_user: User = Depends(get_current_user)):
    result = LeaveRequestService(*deps).submit(current_user.id, data, today=date.today())
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/requests/{request_id}/review", response_model=ApiResponse[LeaveRequestResponse])
def review_leave_request(
    request_id: int, body: LeaveReview, deps=Depends(_services), reviewer: User = Depends(require_admin())
):
    result = LeaveRequestService(*deps).review(request_id, body.status, reviewer.id)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/requests/{request_id}", response_model=ApiResponse[int])
def delete_leave_request(request_id: int, deps=Depends(_services), current_user: User = Depends(get_current_user)):
    service = LeaveRequestService(*deps)
    if not current_user.is_admin and service.get_or_404(request_id).user_id != current_user.id:
        raise NotFoundError("Leave request")
    result = service.delete_request(request_id)
    return ApiResponse.ok(result.data, notice=result.notice)


# --- Holidays ---

@router.get("/holidays", response_model=List[HolidayResponse])
def list_holidays(deps=Depends(_services), _: User = Depends(get_current_user)):
    return HolidayService(*deps).list_holidays()


@router.post("/holidays", response_model=ApiResponse[HolidayResponse], status_code=201)
def create_holiday(data: HolidayCreate, deps=Depends(_services), _: User = Depends(require_admin())):
    result = HolidayService(*deps).create_holiday(data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/holidays/{holiday_id}", response_model=ApiResponse[HolidayResponse])
def update_holiday(holiday_id: int, data: HolidayUpdate, deps=Depends(_services), _: User = Depends(require_admin())):
    result = HolidayService(*deps).update_holiday(holiday_id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/holidays/{holiday_id}", response_model=ApiResponse[int])
def delete_holiday(holiday_id: int, deps=Depends(_services), _: User = Depends(require_admin())):
    result = HolidayService(*deps).delete_holiday(holiday_id)
    return ApiResponse.ok(result.data, notice=result.notice)
