from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.schemas import ApiResponse
from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_cache, get_current_user, require_admin
from ems.schemas.employee import (
    BulkDeleteRequest,
    BulkSelectionState,
    BulkUpdateRequest,
    EmployeeCreate,
    EmployeeProfile,
    EmployeeResponse,
    EmployeeSelfUpdate,
    EmployeeUpdate,
)
from ems.services.bulk import BulkSelection
from ems.services.employee_service import EmployeeService
from ems.services.employee_session import build_profile

router = APIRouter(prefix="/employees", tags=["employees"])


def get_service(db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)) -> EmployeeService:
    return EmployeeService(db, cache)


def _bulk_response(selection: BulkSelection) -> JSONResponse:
    ok = selection.notice.variant != "destructive"
    body = ApiResponse(success=ok, data=selection.state(), notice=selection.notice)
    return JSONResponse(status_code=status.HTTP_200_OK if ok else status.HTTP_400_BAD_REQUEST, content=body.to_dict())


# --- Self-service ---

@router.get("/me/details", response_model=EmployeeProfile)
def read_my_details(
    service: EmployeeService = Depends(get_service),
    current_user: User = Depends(get_current_user),
):
    return build_profile(service.get_own(current_user.id))


@router.patch("/me/details", response_model=ApiResponse[EmployeeProfile])
def update_my_details(
    data: EmployeeSelfUpdate,
    service: EmployeeService = Depends(get_service),
    current_user: User = Depends(get_current_user),
):
    result = service.update_own(current_user.id, data)
    return ApiResponse.ok(build_profile(result.data), notice=result.notice)


# --- Administration ---

@router.get("", response_model=List[EmployeeResponse])
def list_employees(service: EmployeeService = Depends(get_service), _: User = Depends(require_admin())):
    return service.list_employees()


@router.post("", response_model=ApiResponse[EmployeeResponse], status_code=status.HTTP_201_CREATED)
def create_employee(
    data: EmployeeCreate,
    service: EmployeeService = Depends(get_service),
    _: User = Depends(require_admin()),
):
    result = service.create_employee(data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.post("/bulk-delete", response_model=ApiResponse[BulkSelectionState])
def bulk_delete_employees(
    body: BulkDeleteRequest,
    service: EmployeeService = Depends(get_service),
    _: User = Depends(require_admin()),
):
    selection = BulkSelection("employee", body.ids)
    selection.open_dialog()
    selection.delete(service.bulk_delete)
    return _bulk_response(selection)


@router.post("/bulk-update", response_model=ApiResponse[BulkSelectionState])
def bulk_update_employees(
    body: BulkUpdateRequest,
    service: EmployeeService = Depends(get_service),
    _: User = Depends(require_admin()),
):
    selection = BulkSelection("employee", body.ids)
    selection.open_dialog()
    selection.update(service.bulk_update, body.updates)
    return _bulk_response(selection)


@router.get("/{employee_id}", response_model=EmployeeResponse)
def get_employee(employee_id: int, service: EmployeeService = Depends(get_service), _: User = Depends(require_admin())):
    return service.get_employee(employee_id)


@router.patch("/{employee_id}", response_model=ApiResponse[EmployeeResponse])
def update_employee(
    employee_id: int,
    data: EmployeeUpdate,
    service: EmployeeService = Depends(get_service),
    _: User = Depends(require_admin()),
):
    result = service.update_employee(employee_id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/{employee_id}", response_model=ApiResponse[int])
def delete_employee(employee_id: int, service: EmployeeService = Depends(get_service), _: User = Depends(require_admin())):
    result = service.delete_employee(employee_id)
    return ApiResponse.ok(result.data, notice=result.notice)
