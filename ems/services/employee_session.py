"""
Per-session holder of the signed-in employee.

Created when a session starts and closed at logout/teardown. While open it
listens on the ``AuthEventBus`` so a sign-out elsewhere clears the employee
immediately and a fresh sign-in reloads it.
"""
import logging
from typing import Optional

from ems.schemas.auth import SessionState
from ems.schemas.employee import EmergencyContactBase, EmployeeProfile
from ems.services.identity import AuthEvent, AuthEventBus, IdentityService

logger = logging.getLogger(__name__)


class InvalidEmployeeData(Exception):
    pass


def build_profile(employee) -> EmployeeProfile:
    if employee is None or not employee.id or not (employee.full_name or "").strip():
        raise InvalidEmployeeData("Invalid employee data structure")
    contact = employee.emergency_contacts[0] if employee.emergency_contacts else None
    return EmployeeProfile(
        id=employee.id,
        name=employee.full_name,
        email=employee.email,
        department=employee.department,
        role=employee.position,
        status=employee.status,
        phone=employee.phone or "",
        address=employee.address or "",
        date_of_birth=employee.date_of_birth,
        join_date=employee.join_date,
        manager=employee.manager or "",
        base_salary=employee.base_salary or 0.0,
        profile_picture=employee.profile_picture_url,
        emergency_contact=EmergencyContactBase(
            name=contact.name if contact else "",
            phone=contact.phone if contact else "",
            relationship=contact.relationship_type if contact else "",
        ),
    )


class EmployeeSessionProvider:
    def __init__(self, identity: IdentityService, events: AuthEventBus, access_token: Optional[str]):
        self.identity = identity
        self.access_token = access_token
        self.user_id: Optional[int] = None
        self.employee: Optional[EmployeeProfile] = None
        self.is_loading = True
        self.error: Optional[str] = None
        self._subscription = events.subscribe(self._on_auth_event)

    @property
    def is_authenticated(self) -> bool:
        return self.employee is not None

    @property
    def closed(self) -> bool:
        return not self._subscription.active

    def refresh(self) -> Optional[EmployeeProfile]:
        """Re-validate the session and reload the linked employee. Never retries."""
        self.error = None
        try:
            identity = self.identity.get_session(self.access_token)
            if identity is None:
                logger.info("No valid session found, clearing employee data")
                self.user_id = None
                self.employee = None
                return None
            self.user_id = identity.user.id
            employee = self.identity.get_employee(identity.user.id)
            if employee is None:
                logger.info(f"User {identity.user.id} has no linked employee record")
                self.employee = None
                return None
            self.employee = build_profile(employee)
            logger.info(f"Employee data refreshed for employee {self.employee.id}")
        except Exception as e:
            logger.error(f"Error refreshing employee data: {e}", exc_info=True)
            self.error = str(e) or "Failed to refresh employee data"
            self.employee = None
            # Fail safe: drop a session that produced unusable identity data
            self._sign_out_quietly()
        finally:
            self.is_loading = False
        return self.employee

    def logout(self):
        try:
            self.identity.sign_out(self.access_token)
            self.error = None
        except Exception as e:
            logger.error(f"Error during logout: {e}", exc_info=True)
            self.error = "Failed to logout properly. Please sign in again."
        finally:
            self.employee = None
            self.user_id = None
            self.access_token = None

    def close(self):
        self._subscription.unsubscribe()

    def state(self) -> SessionState:
        return SessionState(
            employee=self.employee,
            is_authenticated=self.is_authenticated,
            is_loading=self.is_loading,
            error=self.error,
        )

    def _on_auth_event(self, event: AuthEvent, user_id: int):
        if self.user_id is None or user_id != self.user_id:
            return
        if event == AuthEvent.SIGNED_OUT:
            self.employee = None
        elif event == AuthEvent.SIGNED_IN:
            self.refresh()

    def _sign_out_quietly(self):
        try:
            self.identity.sign_out(self.access_token)
        except Exception as e:
            logger.warning(f"Could not clear session after refresh failure: {e}")
