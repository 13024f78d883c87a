"""
Leave types, balances, requests and holidays.

Balances are plain counters: they are written directly by administrators and
are not recomputed from requests. Approving a request does not move them.
"""
import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from ems.core.cache import Entity, list_scope, user_scope
from ems.core.exceptions import InsufficientBalanceError, ValidationFailedError
from ems.core.schemas import Notice
from ems.models.employee import Employee
from ems.models.holiday import Holiday
from ems.models.leave_balance import LeaveBalance
from ems.models.leave_request import LeaveRequest, LeaveStatus
from ems.models.leave_type import LeaveType
from ems.models.notification import NotificationType
from ems.schemas.leave import (
    BalanceCounts,
    HolidayCreate,
    HolidayResponse,
    HolidayUpdate,
    LeaveBalanceCreate,
    LeaveBalanceMap,
    LeaveBalanceResponse,
    LeaveBalanceUpdate,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveTypeCreate,
    LeaveTypeResponse,
    LeaveTypeUpdate,
)
from ems.services.base import CrudService, MutationResult
from ems.services.notification import queue_notification

logger = logging.getLogger(__name__)


def leave_days(start: date, end: date) -> int:
    """Inclusive number of calendar days between two dates."""
    return abs((end - start).days) + 1


def balance_key(leave_type: str) -> str:
    """``"Sick Leave"`` -> ``"sick_leave"``."""
    return "_".join(leave_type.lower().split())


class LeaveTypeService(CrudService):
    model = LeaveType
    entity = Entity.LEAVE_TYPES
    label = "leave type"
    response_schema = LeaveTypeResponse

    def list_active(self) -> List[LeaveTypeResponse]:
        return self.fetch(list_scope(active=True), LeaveType.is_active == True, order_by=[LeaveType.name])  # noqa: E712

    def create_type(self, data: LeaveTypeCreate) -> MutationResult:
        return self.create(
            data.model_dump(),
            Notice(title="Leave Type Created", description="New leave type has been added."),
        )

    def update_type(self, type_id: int, data: LeaveTypeUpdate) -> MutationResult:
        return self.update(
            type_id,
            data.model_dump(exclude_unset=True),
            Notice(title="Leave Type Updated", description="Leave type has been updated."),
        )

    def deactivate(self, type_id: int) -> MutationResult:
        return self.update(
            type_id,
            {"is_active": False},
            Notice(title="Leave Type Deactivated", description="Leave type has been deactivated."),
        )


class LeaveBalanceService(CrudService):
    model = LeaveBalance
    entity = Entity.LEAVE_BALANCES
    label = "leave balance"
    response_schema = LeaveBalanceResponse

    def list_for_year(self, year: int) -> List[LeaveBalanceResponse]:
        return self.fetch(
            list_scope(year=year),
            LeaveBalance.year == year,
            order_by=[LeaveBalance.leave_type, LeaveBalance.id],
        )

    def list_mine(self, user_id: int, year: int) -> List[LeaveBalanceResponse]:
        return self.fetch(
            user_scope(user_id, year=year),
            LeaveBalance.user_id == user_id,
            LeaveBalance.year == year,
            order_by=[LeaveBalance.leave_type, LeaveBalance.id],
        )

    def balance_map(self, user_id: int, year: int) -> LeaveBalanceMap:
        balances: Dict[str, BalanceCounts] = {}
        for balance in self.list_mine(user_id, year):
            balances[balance_key(balance.leave_type)] = BalanceCounts(
                total=balance.total_days,
                used=balance.used_days,
                remaining=balance.remaining_days,
            )
        return LeaveBalanceMap(year=year, balances=balances)

    def find(self, user_id: int, leave_type: str, year: int) -> Optional[LeaveBalance]:
        """Balance row whose type matches ``leave_type`` by ``balance_key``."""
        key = balance_key(leave_type)
        rows = (
            self.db.query(LeaveBalance)
            .filter(LeaveBalance.user_id == user_id, LeaveBalance.year == year)
            .order_by(LeaveBalance.id)
            .all()
        )
        return next((row for row in rows if balance_key(row.leave_type) == key), None)

    def create_balance(self, data: LeaveBalanceCreate) -> MutationResult:
        values = data.model_dump()
        if values["remaining_days"] is None:
            values["remaining_days"] = data.total_days - data.used_days
        return self.create(
            values,
            Notice(title="Balance Created", description=f"{data.leave_type} balance has been added."),
        )

    def update_balance(self, balance_id: int, data: LeaveBalanceUpdate) -> MutationResult:
        values = data.model_dump(exclude_unset=True)

        def recompute(row: LeaveBalance):
            if "remaining_days" not in values and ({"total_days", "used_days"} & values.keys()):
                row.remaining_days = (row.total_days or 0.0) - (row.used_days or 0.0)

        return self.update(
            balance_id,
            values,
            Notice(title="Balance Updated", description="Leave balance has been updated."),
            before_commit=recompute,
        )


class LeaveRequestService(CrudService):
    model = LeaveRequest
    entity = Entity.LEAVE_REQUESTS
    label = "leave request"
    response_schema = LeaveRequestResponse

    def default_order(self):
        return [LeaveRequest.applied_date.desc(), LeaveRequest.id.desc()]

    def list_all(self, status: Optional[str] = None) -> List[LeaveRequestResponse]:
        criteria = [LeaveRequest.status == status] if status else []
        return self.fetch(list_scope(status=status), *criteria)

    def list_mine(self, user_id: int) -> List[LeaveRequestResponse]:
        return self.fetch(user_scope(user_id), LeaveRequest.user_id == user_id)

    def submit(self, user_id: int, data: LeaveRequestCreate, today: date) -> MutationResult:
        if data.start_date < today:
            raise ValidationFailedError("Start date cannot be in the past", title="Invalid Dates")
        if data.end_date < data.start_date:
            raise ValidationFailedError("End date must be on or after the start date", title="Invalid Dates")

        days = leave_days(data.start_date, data.end_date)
        balance = LeaveBalanceService(self.db, self.cache).find(user_id, data.leave_type, today.year)
        if balance is not None and days > (balance.remaining_days or 0.0):
            logger.info(f"Leave request by user {user_id} rejected: {days} > {balance.remaining_days}")
            raise InsufficientBalanceError(balance.remaining_days or 0.0, days)

        employee = self.db.query(Employee).filter(Employee.user_id == user_id).first()
        request = LeaveRequest(
            user_id=user_id,
            employee_id=employee.id if employee else None,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            days_requested=days,
            reason=data.reason,
            status=LeaveStatus.PENDING.value,
        )
        self.db.add(request)
        self.commit_or_fail(self.entity, "Failed to submit leave request", title="Submission Failed")
        self.db.refresh(request)
        logger.info(f"Leave request {request.id} submitted by user {user_id} ({days} days)")
        return MutationResult(
            self.to_response(request),
            Notice(title="Leave Request Submitted", description="Your leave request has been submitted for approval."),
        )

    def review(self, request_id: int, status: str, reviewer_id: int) -> MutationResult:
        request = self.get_or_404(request_id)
        request.status = status
        request.reviewed_by = reviewer_id
        request.reviewed_at = datetime.now(timezone.utc)
        queue_notification(
            self.db,
            request.user_id,
            title=f"Leave Request {status.capitalize()}",
            message=(
                f"Your {request.leave_type} request for {request.start_date} to "
                f"{request.end_date} was {status}."
            ),
            type=NotificationType.SUCCESS.value if status == LeaveStatus.APPROVED.value else NotificationType.WARNING.value,
            link="/leave",
        )
        self.commit_or_fail(self.entity, "Failed to update leave request", Entity.NOTIFICATIONS, title="Update Failed")
        self.db.refresh(request)
        logger.info(f"Leave request {request_id} {status} by user {reviewer_id}")
        return MutationResult(
            self.to_response(request),
            Notice(title="Request Updated", description="Leave request status has been updated."),
        )

    def delete_request(self, request_id: int) -> MutationResult:
        return self.delete(
            request_id,
            Notice(title="Request Deleted", description="Leave request has been deleted."),
        )


class HolidayService(CrudService):
    model = Holiday
    entity = Entity.HOLIDAYS
    label = "holiday"
    response_schema = HolidayResponse

    def default_order(self):
        return [Holiday.date, Holiday.id]

    def list_holidays(self) -> List[HolidayResponse]:
        return self.fetch()

    def create_holiday(self, data: HolidayCreate) -> MutationResult:
        return self.create(
            data.model_dump(),
            Notice(title="Holiday Created", description="New holiday has been added."),
        )

    def update_holiday(self, holiday_id: int, data: HolidayUpdate) -> MutationResult:
        return self.update(
            holiday_id,
            data.model_dump(exclude_unset=True),
            Notice(title="Holiday Updated", description="Holiday has been updated."),
        )

    def delete_holiday(self, holiday_id: int) -> MutationResult:
        return self.delete(
            holiday_id,
            Notice(title="Holiday Deleted", description="Holiday has been deleted."),
        )
