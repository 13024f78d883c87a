"""
Request-scoped dependencies: current user, role checks, and the
application-owned state objects (query cache, auth event bus).
"""
import logging
from typing import Callable, Iterator, List

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.database import get_db
from ems.models.user import User, UserRole
from ems.services.employee_session import EmployeeSessionProvider
from ems.services.identity import AuthEventBus, IdentityService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_cache(request: Request) -> QueryCache:
    return request.app.state.query_cache


def get_auth_events(request: Request) -> AuthEventBus:
    return request.app.state.auth_events


def get_identity_service(
    db: Session = Depends(get_db),
    events: AuthEventBus = Depends(get_auth_events),
) -> IdentityService:
    return IdentityService(db, events)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    identity: IdentityService = Depends(get_identity_service),
) -> User:
    """
    Resolves the bearer token to a live session and its user.
    Revoked, expired or malformed tokens all answer 401.
    """
    current = identity.get_session(token)
    if current is None:
        logger.info("Authentication failed: no live session for token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current.user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role([UserRole.ADMIN]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_admin():
    """Shorthand for requiring the admin role."""
    return require_role([UserRole.ADMIN])


def get_employee_session(
    token: str = Depends(oauth2_scheme),
    identity: IdentityService = Depends(get_identity_service),
    events: AuthEventBus = Depends(get_auth_events),
) -> Iterator[EmployeeSessionProvider]:
    """An employee session provider that lives for one request."""
    provider = EmployeeSessionProvider(identity, events, token)
    try:
        provider.refresh()
        yield provider
    finally:
        provider.close()
