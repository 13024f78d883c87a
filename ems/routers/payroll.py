from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.schemas import ApiResponse
from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_cache, get_current_user, require_admin
from ems.schemas.payroll import (
    PayrollRunCreate,
    PayrollRunResponse,
    PayslipCreate,
    PayslipResponse,
    PayslipStatusUpdate,
    ProcessRunResult,
    SalaryComponentResponse,
    SalaryComponentSave,
)
from ems.services.payroll_service import (
    PayrollRunService,
    PayslipService,
    SalaryComponentService,
    payslip_filename,
    render_payslip_text,
)

router = APIRouter(
    prefix="/payroll",
    tags=["payroll"]
)


def _deps(db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)):
    return db, cache


# ============================================================================
# Payroll runs
# ============================================================================

@router.get("/runs", response_model=List[PayrollRunResponse])
def list_payroll_runs(deps=Depends(_deps), _: User = Depends(require_admin())):
    return PayrollRunService(*deps).list_runs()


@router.post("/runs", response_model=ApiResponse[PayrollRunResponse], status_code=status.HTTP_201_CREATED)
def create_payroll_run(data: PayrollRunCreate, deps=Depends(_deps), current_user: User = Depends(require_admin())):
    result = PayrollRunService(*deps).create_run(current_user.id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.post("/runs/{run_id}/process", response_model=ApiResponse[ProcessRunResult])
def process_payroll_run(run_id: int, deps=Depends(_deps), _: User = Depends(require_admin())):
    result = PayrollRunService(*deps).process_run(run_id)
    return ApiResponse.ok(result.data, notice=result.notice)


# ============================================================================
# Payslips
# ============================================================================

@router.get("/payslips", response_model=List[PayslipResponse])
def list_payslips(payroll_run_id: Optional[int] = None, deps=Depends(_deps), _: User = Depends(require_admin())):
    return PayslipService(*deps).list_all(payroll_run_id)


@router.get("/payslips/me", response_model=List[PayslipResponse])
def list_my_payslips(deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    return PayslipService(*deps).list_mine(current_user.id)


@router.post("/payslips", response_model=ApiResponse[PayslipResponse], status_code=status.HTTP_201_CREATED)
def create_payslip(data: PayslipCreate, deps=Depends(_deps), current_user: User = Depends(require_admin())):
    result = PayslipService(*deps).create_payslip(current_user.id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/payslips/{payslip_id}/status", response_model=ApiResponse[PayslipResponse])
def update_payslip_status(
    payslip_id: int, body: PayslipStatusUpdate, deps=Depends(_deps), _: User = Depends(require_admin())
):
    result = PayslipService(*deps).update_status(payslip_id, body.status, date.today())
    return ApiResponse.ok(result.data, notice=result.notice)


@router.get("/payslips/{payslip_id}/download", response_class=PlainTextResponse)
def download_payslip(payslip_id: int, deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    """Plain-text payslip. Employees may only download their own."""
    owner = None if current_user.is_admin else current_user.id
    payslip = PayslipService(*deps).get_payslip(payslip_id, user_id=owner)
    return PlainTextResponse(
        render_payslip_text(payslip, generated_on=date.today()),
        headers={"Content-Disposition": f'attachment; filename="{payslip_filename(payslip)}"'},
    )


# ============================================================================
# Salary components
# ============================================================================

@router.get("/components", response_model=List[SalaryComponentResponse])
def list_salary_components(deps=Depends(_deps), _: User = Depends(require_admin())):
    return SalaryComponentService(*deps).list_components()


@router.put("/components", response_model=ApiResponse[SalaryComponentResponse])
def save_salary_component(data: SalaryComponentSave, deps=Depends(_deps), current_user: User = Depends(require_admin())):
    result = SalaryComponentService(*deps).save(current_user.id, data)
    return ApiResponse.ok(result.data, notice=result.notice)
