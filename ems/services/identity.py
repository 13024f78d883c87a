"""
Identity and session store.

Wraps users/user_sessions behind the handful of calls the rest of the
application needs, and publishes SIGNED_IN / SIGNED_OUT events so that
long-lived holders of identity (``EmployeeSessionProvider``) can react.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ems.core import security
from ems.core.config import settings
from ems.core.exceptions import AuthenticationError, ValidationFailedError
from ems.models.employee import Employee
from ems.models.user import User, UserRole, UserSession

logger = logging.getLogger(__name__)

SIGN_IN_ROLES = (UserRole.ADMIN, UserRole.EMPLOYEE)


class AuthEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


AuthListener = Callable[[AuthEvent, int], None]


class Subscription:
    def __init__(self, bus: "AuthEventBus", listener: AuthListener):
        self._bus = bus
        self._listener = listener
        self.active = True

    def unsubscribe(self):
        if self.active:
            self._bus._remove(self._listener)
            self.active = False


class AuthEventBus:
    """Synchronous fan-out of auth state changes, owned by the application."""

    def __init__(self):
        self._listeners: List[AuthListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: AuthListener) -> Subscription:
        with self._lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: AuthListener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, event: AuthEvent, user_id: int):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, user_id)
            except Exception:
                # One broken listener must not stop the others
                logger.exception(f"Auth listener failed on {event.value} for user {user_id}")

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)


@dataclass
class Identity:
    user: User
    session: UserSession


@dataclass
class SignInResult:
    access_token: str
    refresh_token: str
    user: User
    employee_id: Optional[int]


class IdentityService:
    def __init__(self, db: Session, events: AuthEventBus):
        self.db = db
        self.events = events

    def sign_in(self, email: str, password: str, user_agent: Optional[str] = None,
                ip_address: Optional[str] = None) -> SignInResult:
        email = email.strip().lower()
        user = self.db.query(User).filter(func.lower(User.email) == email).first()
        if not user or not security.verify_password(password, user.hashed_password):
            logger.warning(f"Failed login for {email}")
            raise AuthenticationError("Incorrect email or password")
        if not user.is_active:
            raise AuthenticationError("User is inactive")
        if user.role not in SIGN_IN_ROLES:
            raise AuthenticationError("Access denied. Employee account required.")

        employee = self._link_employee(user)
        session, access_token, refresh_token = self._open_session(user, user_agent, ip_address)
        self.db.commit()

        logger.info(f"User {user.id} signed in (session {session.id})")
        self.events.publish(AuthEvent.SIGNED_IN, user.id)
        return SignInResult(access_token, refresh_token, user, employee.id if employee else None)

    def get_session(self, access_token: Optional[str]) -> Optional[Identity]:
        """Resolve an access token to a live session, or None."""
        if not access_token:
            return None
        payload = security.decode_token(access_token)
        if not payload or "error" in payload or payload.get("type") != "access":
            return None
        session = (
            self.db.query(UserSession)
            .filter(
                UserSession.id == payload.get("sid"),
                UserSession.is_revoked == False,  # noqa: E712
                UserSession.expires_at > datetime.now(timezone.utc),
            )
            .first()
        )
        if session is None:
            return None
        user = self.db.query(User).filter(User.id == session.user_id).first()
        if user is None or not user.is_active:
            return None
        return Identity(user=user, session=session)

    def get_employee(self, user_id: int) -> Optional[Employee]:
        return self.db.query(Employee).filter(Employee.user_id == user_id).first()

    def refresh(self, refresh_token: str) -> SignInResult:
        """Rotate a refresh token: the old session is revoked, a new one issued."""
        payload = security.decode_token(refresh_token)
        if not payload or "error" in payload or payload.get("type") != "refresh":
            raise AuthenticationError("Invalid refresh token")
        old = (
            self.db.query(UserSession)
            .filter(
                UserSession.refresh_token == refresh_token,
                UserSession.is_revoked == False,  # noqa: E712
                UserSession.expires_at > datetime.now(timezone.utc),
            )
            .first()
        )
        if old is None:
            raise AuthenticationError("Session expired or revoked")
        user = self.db.query(User).filter(User.id == old.user_id).first()
        if user is None or not user.is_active:
            raise AuthenticationError("User is inactive")

        old.is_revoked = True
        _, access_token, new_refresh = self._open_session(user, old.user_agent, old.ip_address)
        self.db.commit()

        self.events.publish(AuthEvent.TOKEN_REFRESHED, user.id)
        employee = self.get_employee(user.id)
        return SignInResult(access_token, new_refresh, user, employee.id if employee else None)

    def sign_out(self, access_token: Optional[str]) -> bool:
        """Revoke the session behind ``access_token``. Signing out twice is a no-op."""
        identity = self.get_session(access_token)
        if identity is None:
            return False
        identity.session.is_revoked = True
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info(f"User {identity.user.id} signed out")
        self.events.publish(AuthEvent.SIGNED_OUT, identity.user.id)
        return True

    def create_user(self, email: str, password: str, full_name: Optional[str], role: UserRole) -> User:
        email = email.strip().lower()
        if self.db.query(User).filter(func.lower(User.email) == email).first():
            raise ValidationFailedError("A user with this email already exists", title="Registration Failed")
        user = User(
            email=email,
            hashed_password=security.get_password_hash(password),
            full_name=full_name,
            role=role,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Created {role.value} user {user.id}")
        return user

    # --- Internal ---

    def _link_employee(self, user: User) -> Optional[Employee]:
        employee = self.get_employee(user.id)
        if employee is not None:
            return employee
        # First sign-in: attach the HR record registered under the same email
        employee = (
            self.db.query(Employee)
            .filter(func.lower(Employee.email) == user.email.lower(), Employee.user_id.is_(None))
            .first()
        )
        if employee is not None:
            employee.user_id = user.id
            logger.info(f"Linked employee {employee.id} to user {user.id}")
        return employee

    def _open_session(self, user: User, user_agent: Optional[str], ip_address: Optional[str]):
        refresh_token = security.create_refresh_token({"sub": user.email})
        session = UserSession(
            user_id=user.id,
            refresh_token=refresh_token,
            expires_at=datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days),
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self.db.add(session)
        self.db.flush()
        access_token = security.create_access_token({
            "sub": user.email,
            "user_id": user.id,
            "role": user.role.value,
            "sid": session.id,
        })
        return session, access_token, refresh_token
