import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ems.core.cache import CacheKey, Entity, list_scope, user_scope
from ems.core.config import settings
from ems.core.exceptions import (
    AlreadyClockedInError,
    MutationFailedError,
    NotFoundError,
    ValidationFailedError,
)
from ems.core.schemas import Notice
from ems.models.attendance import Attendance
from ems.models.employee import Employee, EmployeeStatus
from ems.schemas.attendance import (
    AttendanceDayStats,
    AttendanceResponse,
    AttendanceUpdate,
    MyAttendanceStats,
)
from ems.services.base import CrudService, MutationResult

logger = logging.getLogger(__name__)

ADMIN_LIST_LIMIT = 100
MY_LIST_LIMIT = 30


def worked_hours(check_in: Optional[datetime], check_out: Optional[datetime]) -> float:
    """Hours between clock-in and clock-out, one decimal. Open sessions count as 0."""
    if not check_in or not check_out:
        return 0.0
    return round((check_out - check_in).total_seconds() / 3600, 1)


def late_cutoff() -> time:
    return time(settings.attendance.late_arrival_hour, settings.attendance.late_arrival_minute)


def is_late(check_in: Optional[datetime]) -> bool:
    return check_in is not None and check_in.time() > late_cutoff()


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def summarize(records: Iterable[AttendanceResponse], today: date) -> MyAttendanceStats:
    start = week_start(today)
    today_hours = 0.0
    weekly_hours = 0.0
    open_record = None
    for record in records:
        if record.date == today and record.check_out is None and open_record is None:
            open_record = record
        if record.check_in is None or record.check_out is None:
            continue
        hours = (record.check_out - record.check_in).total_seconds() / 3600
        if record.date == today:
            today_hours += hours
        if start <= record.date <= today:
            weekly_hours += hours
    return MyAttendanceStats(
        today_hours=round(today_hours, 1),
        weekly_hours=round(weekly_hours, 1),
        is_clocked_in=open_record is not None,
        open_record_id=open_record.id if open_record else None,
    )


class AttendanceService(CrudService):
    model = Attendance
    entity = Entity.ATTENDANCE
    label = "attendance record"
    response_schema = AttendanceResponse

    def default_order(self):
        return [Attendance.date.desc(), Attendance.check_in.desc(), Attendance.id.desc()]

    def to_response(self, row: Attendance) -> AttendanceResponse:
        response = AttendanceResponse.model_validate(row)
        response.hours = worked_hours(row.check_in, row.check_out)
        return response

    def list_all(self) -> List[AttendanceResponse]:
        return self.fetch(limit=ADMIN_LIST_LIMIT)

    def list_mine(self, user_id: int) -> List[AttendanceResponse]:
        return self.fetch(user_scope(user_id), Attendance.user_id == user_id, limit=MY_LIST_LIMIT)

    def my_stats(self, user_id: int, today: date) -> MyAttendanceStats:
        return summarize(self.list_mine(user_id), today)

    def clock_in(self, user_id: int, now: datetime, notes: Optional[str] = None) -> MutationResult:
        """
        Open today's session with a single insert. The partial unique index on
        open sessions rejects a second one, so there is no separate lookup.
        """
        employee = self.db.query(Employee).filter(Employee.user_id == user_id).first()
        record = Attendance(
            user_id=user_id,
            employee_id=employee.id if employee else None,
            date=now.date(),
            check_in=now,
            status="present",
            notes=notes,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"User {user_id} already has an open session for {now.date()}")
            raise AlreadyClockedInError()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Clock in failed for user {user_id}: {e}", exc_info=True)
            raise MutationFailedError(title="Clock In Failed", message="Failed to clock in") from e
        self.cache.invalidate(self.entity)
        self.db.refresh(record)
        logger.info(f"User {user_id} clocked in at {now.isoformat()}")
        return MutationResult(
            self.to_response(record),
            Notice(title="Clocked In", description=f"Successfully clocked in at {now.strftime('%H:%M:%S')}"),
        )

    def clock_out(self, user_id: int, record_id: int, now: datetime, notes: Optional[str] = None) -> MutationResult:
        record = self.get_or_404(record_id)
        if record.user_id != user_id:
            raise NotFoundError("Attendance record")
        if record.check_out is not None:
            raise ValidationFailedError("This session is already closed", title="Clock Out Failed")
        record.check_out = now
        if notes is not None:
            record.notes = notes
        self.commit_or_fail(self.entity, "Failed to clock out", title="Clock Out Failed")
        self.db.refresh(record)
        hours = worked_hours(record.check_in, record.check_out)
        logger.info(f"User {user_id} clocked out after {hours}h")
        return MutationResult(
            self.to_response(record),
            Notice(title="Clocked Out", description=f"Successfully clocked out. Total hours: {hours:.1f}h"),
        )

    def update_record(self, record_id: int, data: AttendanceUpdate) -> MutationResult:
        return self.update(
            record_id,
            data.model_dump(exclude_unset=True),
            Notice(title="Attendance Updated", description="Attendance record has been updated."),
        )

    def delete_record(self, record_id: int) -> MutationResult:
        return self.delete(
            record_id,
            Notice(title="Attendance Deleted", description="Attendance record has been deleted."),
        )

    def day_stats(self, day: date) -> AttendanceDayStats:
        def load():
            rows = self.db.query(Attendance).filter(Attendance.date == day).all()
            present = sum(1 for row in rows if row.status == "present")
            late = sum(1 for row in rows if is_late(row.check_in))
            completed = [
                (row.check_out - row.check_in).total_seconds() / 3600
                for row in rows if row.check_in and row.check_out
            ]
            average = round(sum(completed) / len(completed), 1) if completed else 0.0
            total = (
                self.db.query(Employee)
                .filter(Employee.status != EmployeeStatus.TERMINATED.value)
                .count()
            )
            return AttendanceDayStats(
                date=day,
                present=present,
                late_arrivals=late,
                average_hours=average,
                total_employees=total,
                absent=max(total - present, 0),
            )

        return self.cache.get_or_load(CacheKey(Entity.ATTENDANCE_STATS, list_scope(date=day)), load)
