from pydantic import BaseModel, ConfigDict, Field
import datetime as dt
from datetime import date, datetime
from typing import Dict, Literal, Optional


class LeaveTypeCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    days_allowed: float = Field(default=0.0, ge=0)
    color: str = "#3b82f6"


class LeaveTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    days_allowed: Optional[float] = Field(default=None, ge=0)
    color: Optional[str] = None
    is_active: Optional[bool] = None


class LeaveTypeResponse(LeaveTypeCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool


class LeaveBalanceCreate(BaseModel):
    user_id: int
    employee_id: Optional[int] = None
    leave_type: str
    year: int
    total_days: float = Field(ge=0)
    used_days: float = Field(default=0.0, ge=0)
    remaining_days: Optional[float] = None


class LeaveBalanceUpdate(BaseModel):
    total_days: Optional[float] = Field(default=None, ge=0)
    used_days: Optional[float] = Field(default=None, ge=0)
    remaining_days: Optional[float] = None


class LeaveBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    employee_id: Optional[int] = None
    leave_type: str
    year: int
    total_days: float
    used_days: float
    remaining_days: float


class BalanceCounts(BaseModel):
    total: float
    used: float
    remaining: float


class LeaveBalanceMap(BaseModel):
    """Counters keyed by normalised leave type name (``sick_leave``)."""
    year: int
    balances: Dict[str, BalanceCounts]


class LeaveRequestCreate(BaseModel):
    leave_type: str = Field(min_length=1)
    start_date: date
    end_date: date
    reason: Optional[str] = None


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    employee_id: Optional[int] = None
    leave_type: str
    start_date: date
    end_date: date
    days_requested: int
    reason: Optional[str] = None
    status: str
    applied_date: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None


class LeaveReview(BaseModel):
    status: Literal["approved", "rejected"]


class HolidayCreate(BaseModel):
    name: str = Field(min_length=1)
    date: dt.date
    type: str = "public"
    description: Optional[str] = None


class HolidayUpdate(BaseModel):
    name: Optional[str] = None
    date: Optional[dt.date] = None
    type: Optional[str] = None
    description: Optional[str] = None


class HolidayResponse(HolidayCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
