"""
Attendance notification job.

Three runs, each a query over one day's attendance followed by one
notification row per matching user:

- late_arrival: clocked in after the late-arrival cutoff (09:00)
- absent: active users with no attendance row; only notified from 10:00 on
- overtime_alert: closed sessions of at least 9 hours
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ems.core.cache import Entity, QueryCache
from ems.core.config import settings
from ems.models.attendance import Attendance
from ems.models.employee import Employee
from ems.models.notification import NotificationType
from ems.models.user import User
from ems.services.attendance import late_cutoff
from ems.services.base import BaseService
from ems.services.notification import queue_notification

logger = logging.getLogger(__name__)

LATE_ARRIVAL = "late_arrival"
ABSENT = "absent"
OVERTIME_ALERT = "overtime_alert"
NOTIFICATION_TYPES = (LATE_ARRIVAL, ABSENT, OVERTIME_ALERT)


class UnknownNotificationType(ValueError):
    pass


class AttendanceNotificationJob(BaseService):
    def __init__(self, db: Session, cache: QueryCache, now: Optional[datetime] = None):
        super().__init__(db, cache)
        self.now = now or datetime.now()

    def run(self, type: str, employee_id: Optional[int] = None, day: Optional[date] = None) -> Dict[str, Any]:
        if type not in NOTIFICATION_TYPES:
            raise UnknownNotificationType("Invalid notification type")
        day = day or self.now.date()
        logger.info(f"Processing attendance notification: {type} for {day}")

        user_filter = self._user_filter(employee_id)
        if type == LATE_ARRIVAL:
            return self._late_arrivals(day, user_filter)
        if type == ABSENT:
            return self._absences(day, user_filter)
        return self._overtime(day, user_filter)

    def _user_filter(self, employee_id: Optional[int]) -> Optional[List[int]]:
        """None means everyone; a list (possibly empty) narrows to those users."""
        if employee_id is None:
            return None
        employee = self.db.query(Employee).filter(Employee.id == employee_id).first()
        return [employee.user_id] if employee and employee.user_id else []

    def _day_rows(self, day: date, user_filter: Optional[List[int]]):
        query = self.db.query(Attendance).filter(Attendance.date == day, Attendance.check_in.isnot(None))
        if user_filter is not None:
            query = query.filter(Attendance.user_id.in_(user_filter))
        return query.order_by(Attendance.check_in).all()

    def _late_arrivals(self, day: date, user_filter) -> Dict[str, Any]:
        cutoff = datetime.combine(day, late_cutoff())
        late = [row for row in self._day_rows(day, user_filter) if row.check_in > cutoff]
        logger.info(f"Found {len(late)} late arrivals")
        for row in late:
            queue_notification(
                self.db,
                row.user_id,
                title="Late Arrival Notice",
                message=f"You clocked in late today at {row.check_in.strftime('%H:%M:%S')}",
                type=NotificationType.WARNING.value,
            )
        self._commit(len(late))
        return {
            "success": True,
            "lateArrivals": len(late),
            "message": f"Processed {len(late)} late arrival notifications",
        }

    def _absences(self, day: date, user_filter) -> Dict[str, Any]:
        users = self.db.query(User).filter(User.is_active == True)  # noqa: E712
        if user_filter is not None:
            users = users.filter(User.id.in_(user_filter))
        attended = {
            user_id for (user_id,) in self.db.query(Attendance.user_id).filter(Attendance.date == day).all()
        }
        absent = [user for user in users.order_by(User.id).all() if user.id not in attended]
        logger.info(f"Found {len(absent)} absent employees")

        if self.now.hour >= settings.attendance.absence_cutoff_hour:
            for user in absent:
                queue_notification(
                    self.db,
                    user.id,
                    title="Attendance Reminder",
                    message="You have not clocked in today. Please update your attendance status.",
                    type=NotificationType.INFO.value,
                )
            self._commit(len(absent))
        return {
            "success": True,
            "absentCount": len(absent),
            "message": f"Processed {len(absent)} absence notifications",
        }

    def _overtime(self, day: date, user_filter) -> Dict[str, Any]:
        threshold = settings.attendance.overtime_threshold_hours
        overtime = []
        for row in self._day_rows(day, user_filter):
            if row.check_out is None:
                continue
            hours = (row.check_out - row.check_in).total_seconds() / 3600
            if hours >= threshold:
                overtime.append((row, hours))
        logger.info(f"Found {len(overtime)} employees with overtime")
        for row, hours in overtime:
            queue_notification(
                self.db,
                row.user_id,
                title="Overtime Logged",
                message=f"You worked {hours:.1f} hours today. Please ensure overtime is approved.",
                type=NotificationType.INFO.value,
            )
        self._commit(len(overtime))
        return {
            "success": True,
            "overtimeCount": len(overtime),
            "message": f"Processed {len(overtime)} overtime alerts",
        }

    def _commit(self, inserted: int):
        if inserted:
            self.commit_or_fail(Entity.NOTIFICATIONS, "Failed to create attendance notifications")
