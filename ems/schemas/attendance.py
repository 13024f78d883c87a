import datetime as dt
from pydantic import BaseModel, ConfigDict
from typing import Optional


class ClockInRequest(BaseModel):
    notes: Optional[str] = None


class AttendanceUpdate(BaseModel):
    check_in: Optional[dt.datetime] = None
    check_out: Optional[dt.datetime] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    employee_id: Optional[int] = None
    date: dt.date
    check_in: Optional[dt.datetime] = None
    check_out: Optional[dt.datetime] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    hours: float = 0.0


class MyAttendanceStats(BaseModel):
    today_hours: float
    weekly_hours: float
    is_clocked_in: bool
    open_record_id: Optional[int] = None


class AttendanceDayStats(BaseModel):
    date: dt.date
    present: int
    late_arrivals: int
    average_hours: float
    total_employees: int
    absent: int
