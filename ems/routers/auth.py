import logging

from fastapi import APIRouter, Depends, Request, status

from ems.core.config import settings
from ems.core.limiter import limiter
from ems.core.schemas import ApiResponse, Notice
from ems.models.user import User
from ems.routers.auth_deps import (
    get_current_user,
    get_employee_session,
    get_identity_service,
    require_admin,
)
from ems.schemas.auth import LoginRequest, RefreshRequest, SessionState, Token, UserCreate, UserResponse
from ems.services.employee_session import EmployeeSessionProvider
from ems.services.identity import IdentityService, SignInResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


def _token_response(result: SignInResult) -> Token:
    user = UserResponse.model_validate(result.user)
    user.employee_id = result.employee_id
    return Token(access_token=result.access_token, refresh_token=result.refresh_token, user=user)


@router.post("/login", response_model=Token)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, login_data: LoginRequest, identity: IdentityService = Depends(get_identity_service)):
    result = identity.sign_in(
        login_data.email,
        login_data.password,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    return _token_response(result)


@router.post("/refresh", response_model=Token)
def refresh_token(body: RefreshRequest, identity: IdentityService = Depends(get_identity_service)):
    return _token_response(identity.refresh(body.refresh_token))


@router.post("/logout", response_model=ApiResponse[SessionState])
def logout(session: EmployeeSessionProvider = Depends(get_employee_session)):
    session.logout()
    notice = Notice.error("Logout Failed", session.error) if session.error else Notice(
        title="Signed out", description="You have been signed out."
    )
    return ApiResponse.ok(session.state(), notice=notice)


@router.get("/me", response_model=UserResponse)
def read_me(current_user: User = Depends(get_current_user), identity: IdentityService = Depends(get_identity_service)):
    user = UserResponse.model_validate(current_user)
    employee = identity.get_employee(current_user.id)
    user.employee_id = employee.id if employee else None
    return user


@router.get("/session", response_model=SessionState)
def read_session(session: EmployeeSessionProvider = Depends(get_employee_session)):
    """Employee portal view of the current session."""
    return session.state()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    identity: IdentityService = Depends(get_identity_service),
    admin: User = Depends(require_admin()),
):
    user = identity.create_user(data.email, data.password, data.full_name, data.role)
    logger.info(f"Admin {admin.id} created user {user.id}")
    return UserResponse.model_validate(user)
