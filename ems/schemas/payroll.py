from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List, Literal, Optional
from ems.models.payroll import PayslipStatus
from ems.models.salary_component import ComponentType, CalculationType


class PayLine(BaseModel):
    name: str
    amount: float = 0.0


class PayrollRunCreate(BaseModel):
    period_start: date
    period_end: date
    payment_date: date
    notes: Optional[str] = None


class PayrollRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    period_start: date
    period_end: date
    payment_date: date
    status: str
    total_gross: float
    total_deductions: float
    total_net: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class PayslipCreate(BaseModel):
    employee_id: int
    payroll_run_id: Optional[int] = None
    pay_period_start: Optional[date] = None
    pay_period_end: Optional[date] = None
    base_salary: float = Field(ge=0)
    earnings: List[PayLine] = []
    deductions: List[PayLine] = []
    benefits: List[PayLine] = []
    # Totals are derived from the lines when omitted
    gross_pay: Optional[float] = None
    total_deductions: Optional[float] = None
    net_pay: Optional[float] = None
    payment_method: str = "bank_transfer"
    bank_account: Optional[str] = None
    notes: Optional[str] = None


class PayslipStatusUpdate(BaseModel):
    status: PayslipStatus


class PayslipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    employee_id: int
    payroll_run_id: Optional[int] = None
    employee_name: str
    employee_code: Optional[str] = None
    pay_period_start: Optional[date] = None
    pay_period_end: Optional[date] = None
    base_salary: float
    gross_pay: float
    total_deductions: float
    net_pay: float
    earnings: List[PayLine] = []
    deductions: List[PayLine] = []
    benefits: List[PayLine] = []
    payment_method: Optional[str] = None
    bank_account: Optional[str] = None  # masked
    status: str
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class SalaryComponentSave(BaseModel):
    id: Optional[int] = None
    name: str = Field(min_length=1)
    type: ComponentType
    calculation_type: CalculationType = CalculationType.FIXED
    value: Optional[float] = None
    percentage: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: bool = True
    is_taxable: bool = True
    description: Optional[str] = None


class SalaryComponentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    calculation_type: str
    value: Optional[float] = None
    percentage: Optional[float] = None
    is_active: bool
    is_taxable: bool
    description: Optional[str] = None


class ProcessRunResult(BaseModel):
    run: PayrollRunResponse
    processed_payslips: int
    status: Literal["completed"] = "completed"
