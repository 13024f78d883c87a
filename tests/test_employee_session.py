from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from ems.models.employee import EmergencyContact, Employee
from ems.models.user import UserSession
from ems.services.employee_session import EmployeeSessionProvider
from ems.services.identity import AuthEvent, AuthEventBus, IdentityService

PASSWORD = "Password123!"


@pytest.fixture
def identity(db_session, events):
    return IdentityService(db_session, events)


def _provider(identity, events, user):
    token = identity.sign_in(user.email, PASSWORD).access_token
    provider = EmployeeSessionProvider(identity, events, token)
    return provider, token


def test_refresh_loads_linked_employee(db_session, identity, events, employee, employee_user):
    db_session.add(EmergencyContact(employee_id=employee.id, name="John Doe", phone="555-0100",
                                    relationship_type="Spouse"))
    db_session.commit()
    provider, _ = _provider(identity, events, employee_user)

    profile = provider.refresh()

    assert provider.is_authenticated
    assert provider.is_loading is False
    assert provider.error is None
    assert profile.name == "Jane Doe"
    assert profile.emergency_contact.relationship == "Spouse"


def test_missing_session_is_logged_out_without_error(identity, events):
    provider = EmployeeSessionProvider(identity, events, None)
    assert provider.refresh() is None
    assert not provider.is_authenticated
    assert provider.error is None
    assert provider.is_loading is False


def test_user_without_employee_record(identity, events, admin_user):
    provider, _ = _provider(identity, events, admin_user)
    provider.refresh()
    assert provider.employee is None
    assert provider.error is None
    assert provider.user_id == admin_user.id


def test_invalid_employee_data_signs_out(db_session, identity, events, employee, employee_user):
    employee.full_name = "   "
    db_session.commit()
    provider, token = _provider(identity, events, employee_user)

    provider.refresh()

    assert provider.employee is None
    assert provider.error == "Invalid employee data structure"
    assert identity.get_session(token) is None


def test_signed_out_event_clears_employee_for_same_user_only(identity, events, employee, employee_user):
    provider, _ = _provider(identity, events, employee_user)
    provider.refresh()

    events.publish(AuthEvent.SIGNED_OUT, employee_user.id + 100)
    assert provider.is_authenticated

    events.publish(AuthEvent.SIGNED_OUT, employee_user.id)
    assert provider.employee is None


def test_signed_in_event_reloads_employee(db_session, identity, events, employee_user):
    provider, _ = _provider(identity, events, employee_user)
    provider.refresh()
    assert provider.employee is None

    db_session.add(Employee(user_id=employee_user.id, full_name="Jane Doe", email=employee_user.email,
                            department="Engineering", position="Developer", status="Active",
                            join_date=date(2023, 1, 9)))
    db_session.commit()
    events.publish(AuthEvent.SIGNED_IN, employee_user.id)

    assert provider.is_authenticated
    assert provider.employee.department == "Engineering"


def test_close_unsubscribes(identity, events, employee_user):
    provider, _ = _provider(identity, events, employee_user)
    assert events.listener_count == 1
    provider.close()
    provider.close()
    assert events.listener_count == 0
    assert provider.closed


def test_logout_clears_state_and_revokes(identity, events, employee, employee_user):
    provider, token = _provider(identity, events, employee_user)
    provider.refresh()

    provider.logout()

    assert provider.employee is None
    assert provider.error is None
    assert identity.get_session(token) is None
    # Signing out a second time is a no-op
    assert identity.sign_out(token) is False


def test_logout_failure_still_clears_state(identity, events, employee, employee_user, monkeypatch):
    provider, _ = _provider(identity, events, employee_user)
    provider.refresh()

    def broken_sign_out(token):
        raise RuntimeError("network down")

    monkeypatch.setattr(identity, "sign_out", broken_sign_out)
    provider.logout()

    assert provider.employee is None
    assert provider.error == "Failed to logout properly. Please sign in again."


def test_failed_sign_out_commit_leaves_session_usable(db_session, identity, events, employee, employee_user, monkeypatch):
    provider, token = _provider(identity, events, employee_user)
    provider.refresh()

    def failing_commit():
        raise OperationalError("UPDATE user_sessions", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    provider.logout()
    monkeypatch.undo()

    assert provider.employee is None
    assert provider.error == "Failed to logout properly. Please sign in again."
    # Rolled back: the session row is still live and the db session still answers
    assert db_session.query(UserSession).filter(UserSession.is_revoked.is_(True)).count() == 0
    assert identity.get_session(token) is not None


def test_broken_listener_does_not_block_others():
    bus = AuthEventBus()
    seen = []

    def broken(event, user_id):
        raise ValueError("boom")

    bus.subscribe(broken)
    bus.subscribe(lambda event, user_id: seen.append((event, user_id)))
    bus.publish(AuthEvent.SIGNED_OUT, 7)

    assert seen == [(AuthEvent.SIGNED_OUT, 7)]
