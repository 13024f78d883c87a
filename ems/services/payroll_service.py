"""
Payroll Service Layer

Payroll runs, payslips and salary components.

- Payslip totals are derived from the itemized lines unless the caller
  supplies them.
- Processing a run is one transaction: pending payslips become
  ``processed`` and the run becomes ``completed`` together.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func

from ems.core.cache import Entity, list_scope, user_scope
from ems.core.exceptions import NotFoundError
from ems.core.schemas import Notice
from ems.core.security import decrypt_data, encrypt_data, mask_account
from ems.models.employee import Employee
from ems.models.payroll import PayrollRun, PayrollRunStatus, Payslip, PayslipStatus
from ems.models.salary_component import CalculationType, SalaryComponent
from ems.schemas.payroll import (
    PayLine,
    PayrollRunCreate,
    PayrollRunResponse,
    PayslipCreate,
    PayslipResponse,
    ProcessRunResult,
    SalaryComponentResponse,
    SalaryComponentSave,
)
from ems.services.base import CrudService, MutationResult

logger = logging.getLogger(__name__)


def compute_totals(base_salary: float, earnings: List[PayLine], deductions: List[PayLine]) -> Tuple[float, float, float]:
    """Return (gross, deductions, net) for one payslip."""
    gross = base_salary + sum(line.amount for line in earnings)
    total_deductions = sum(line.amount for line in deductions)
    return round(gross, 2), round(total_deductions, 2), round(gross - total_deductions, 2)


def paid_date_for(status: str, today: date) -> Optional[date]:
    return today if status == PayslipStatus.PAID.value else None


def employee_code(employee_id: int) -> str:
    return f"EMP{employee_id:04d}"


def _money(amount) -> str:
    return f"${float(amount or 0):,.2f}"


def render_payslip_text(payslip: PayslipResponse, generated_on: date) -> str:
    """Plain-text payslip as offered for download."""
    lines = [
        f"PAYSLIP - {payslip.employee_name}",
        f"Employee Code: {payslip.employee_code or 'N/A'}",
        f"Generated on: {generated_on.isoformat()}",
        "",
        "EARNINGS:",
        f"Base Salary: {_money(payslip.base_salary)}",
    ]
    lines += [f"{line.name}: {_money(line.amount)}" for line in payslip.earnings]
    lines += [
        f"Total Gross Pay: {_money(payslip.gross_pay)}",
        "",
        "DEDUCTIONS:",
    ]
    lines += [f"{line.name}: {_money(line.amount)}" for line in payslip.deductions]
    lines += [
        f"Total Deductions: {_money(payslip.total_deductions)}",
        "",
        f"NET PAY: {_money(payslip.net_pay)}",
        "",
        f"Payment Method: {payslip.payment_method}",
        f"Status: {payslip.status}",
    ]
    if payslip.paid_date:
        lines.append(f"Paid Date: {payslip.paid_date.isoformat()}")
    lines += ["", "This payslip is generated electronically and is valid without signature.", ""]
    return "\n".join(lines)


def payslip_filename(payslip: PayslipResponse) -> str:
    return f"payslip_{payslip.employee_code or payslip.employee_id}_{payslip.employee_name.replace(' ', '_')}.txt"


class PayrollRunService(CrudService):
    model = PayrollRun
    entity = Entity.PAYROLL_RUNS
    label = "payroll run"
    response_schema = PayrollRunResponse

    def default_order(self):
        return [PayrollRun.period_start.desc(), PayrollRun.id.desc()]

    def list_runs(self) -> List[PayrollRunResponse]:
        return self.fetch()

    def create_run(self, user_id: int, data: PayrollRunCreate) -> MutationResult:
        values = data.model_dump()
        values.update(user_id=user_id, status=PayrollRunStatus.DRAFT.value)
        return self.create(values, Notice(title="Success", description="Payroll run created successfully"))

    def process_run(self, run_id: int) -> MutationResult:
        run = self.get_or_404(run_id)
        processed = (
            self.db.query(Payslip)
            .filter(Payslip.payroll_run_id == run_id, Payslip.status == PayslipStatus.PENDING.value)
            .update({Payslip.status: PayslipStatus.PROCESSED.value}, synchronize_session=False)
        )
        run.status = PayrollRunStatus.COMPLETED.value
        # payroll_runs invalidation also drops cached payslip views
        self.commit_or_fail(self.entity, "Failed to process payroll")
        self.db.refresh(run)
        logger.info(f"Processed payroll run {run_id}: {processed} payslips")
        return MutationResult(
            ProcessRunResult(run=self.to_response(run), processed_payslips=processed),
            Notice(title="Payroll Processed", description="All pending payroll entries have been processed successfully."),
        )


class PayslipService(CrudService):
    model = Payslip
    entity = Entity.PAYSLIPS
    label = "payslip"
    response_schema = PayslipResponse

    def to_response(self, row: Payslip) -> PayslipResponse:
        response = PayslipResponse.model_validate(row)
        response.bank_account = mask_account(decrypt_data(row.bank_account)) if row.bank_account else None
        return response

    def list_all(self, payroll_run_id: Optional[int] = None) -> List[PayslipResponse]:
        criteria = [Payslip.payroll_run_id == payroll_run_id] if payroll_run_id else []
        return self.fetch(list_scope(run=payroll_run_id), *criteria)

    def list_mine(self, user_id: int) -> List[PayslipResponse]:
        employee = self.db.query(Employee).filter(Employee.user_id == user_id).first()
        if employee is None:
            return []
        return self.fetch(user_scope(user_id), Payslip.employee_id == employee.id)

    def get_payslip(self, payslip_id: int, user_id: Optional[int] = None) -> PayslipResponse:
        """Fetch one payslip; with ``user_id`` only the owner's payslips are visible."""
        row = self.get_or_404(payslip_id)
        if user_id is not None:
            employee = self.db.query(Employee).filter(Employee.user_id == user_id).first()
            if employee is None or row.employee_id != employee.id:
                raise NotFoundError("Payslip")
        return self.to_response(row)

    def create_payslip(self, creator_id: int, data: PayslipCreate) -> MutationResult:
        employee = self.db.query(Employee).filter(Employee.id == data.employee_id).first()
        if employee is None:
            raise NotFoundError("Employee")
        if data.payroll_run_id is not None and self.db.get(PayrollRun, data.payroll_run_id) is None:
            raise NotFoundError("Payroll run")

        gross, deductions, net = compute_totals(data.base_salary, data.earnings, data.deductions)
        payslip = Payslip(
            user_id=creator_id,
            employee_id=employee.id,
            payroll_run_id=data.payroll_run_id,
            employee_name=employee.full_name,
            employee_code=employee_code(employee.id),
            pay_period_start=data.pay_period_start,
            pay_period_end=data.pay_period_end,
            base_salary=data.base_salary,
            gross_pay=data.gross_pay if data.gross_pay is not None else gross,
            total_deductions=data.total_deductions if data.total_deductions is not None else deductions,
            net_pay=data.net_pay if data.net_pay is not None else net,
            earnings=[line.model_dump() for line in data.earnings],
            deductions=[line.model_dump() for line in data.deductions],
            benefits=[line.model_dump() for line in data.benefits],
            payment_method=data.payment_method,
            bank_account=encrypt_data(data.bank_account) if data.bank_account else None,
            notes=data.notes,
        )
        self.db.add(payslip)
        self.db.flush()
        extra = ()
        if data.payroll_run_id is not None:
            self._refresh_run_totals(data.payroll_run_id)
            extra = (Entity.PAYROLL_RUNS,)
        self.commit_or_fail(self.entity, "Failed to create payslip", *extra)
        self.db.refresh(payslip)
        logger.info(f"Created payslip {payslip.id} for employee {employee.id}")
        return MutationResult(self.to_response(payslip), Notice(title="Success", description="Payslip created successfully"))

    def update_status(self, payslip_id: int, status: PayslipStatus, today: date) -> MutationResult:
        return self.update(
            payslip_id,
            {"status": status.value, "paid_date": paid_date_for(status.value, today)},
            Notice(title="Payslip Updated", description=f"Payslip marked as {status.value}."),
        )

    def _refresh_run_totals(self, run_id: int):
        gross, deductions, net = (
            self.db.query(
                func.coalesce(func.sum(Payslip.gross_pay), 0.0),
                func.coalesce(func.sum(Payslip.total_deductions), 0.0),
                func.coalesce(func.sum(Payslip.net_pay), 0.0),
            )
            .filter(Payslip.payroll_run_id == run_id)
            .one()
        )
        run = self.db.query(PayrollRun).filter(PayrollRun.id == run_id).first()
        run.total_gross = gross
        run.total_deductions = deductions
        run.total_net = net


class SalaryComponentService(CrudService):
    model = SalaryComponent
    entity = Entity.SALARY_COMPONENTS
    label = "salary component"
    response_schema = SalaryComponentResponse

    def default_order(self):
        return [SalaryComponent.type, SalaryComponent.name, SalaryComponent.id]

    def list_components(self) -> List[SalaryComponentResponse]:
        return self.fetch()

    def save(self, user_id: int, data: SalaryComponentSave) -> MutationResult:
        """Create, or update when ``data.id`` is set."""
        values = data.model_dump(exclude={"id"})
        values["type"] = data.type.value
        values["calculation_type"] = data.calculation_type.value
        # Only the amount matching the calculation type is stored
        values["value"] = data.value if data.calculation_type == CalculationType.FIXED else None
        values["percentage"] = data.percentage if data.calculation_type == CalculationType.PERCENTAGE else None

        notice = Notice(title="Success", description="Salary component saved successfully")
        if data.id is not None:
            return self.update(data.id, values, notice)
        values["user_id"] = user_id
        return self.create(values, notice)
