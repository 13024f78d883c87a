from datetime import date, datetime

import pytest

from ems.core.security import get_password_hash
from ems.models.attendance import Attendance
from ems.models.notification import Notification
from ems.models.user import User, UserRole
from ems.services.attendance_notifications import AttendanceNotificationJob, UnknownNotificationType
from ems.services.notification import NotificationService

DAY = date(2024, 3, 6)


def _attend(db_session, user, start, end=None):
    db_session.add(Attendance(user_id=user.id, date=DAY, check_in=start, check_out=end, status="present"))
    db_session.commit()


@pytest.fixture
def colleague(db_session):
    user = User(email="sam.lee@company.com", hashed_password=get_password_hash("x"),
                role=UserRole.EMPLOYEE, is_active=True, full_name="Sam Lee")
    db_session.add(user)
    db_session.commit()
    return user


def test_late_arrival_notifies_only_late_check_ins(db_session, cache, employee_user, colleague):
    _attend(db_session, employee_user, datetime(2024, 3, 6, 9, 15))
    _attend(db_session, colleague, datetime(2024, 3, 6, 8, 50))

    result = AttendanceNotificationJob(db_session, cache, now=datetime(2024, 3, 6, 11, 0)).run("late_arrival", day=DAY)

    assert result == {"success": True, "lateArrivals": 1, "message": "Processed 1 late arrival notifications"}
    rows = db_session.query(Notification).all()
    assert len(rows) == 1
    assert rows[0].user_id == employee_user.id
    assert rows[0].type == "warning"
    assert rows[0].title == "Late Arrival Notice"
    assert "09:15:00" in rows[0].message


def test_absent_only_notifies_after_cutoff(db_session, cache, admin_user, employee_user, colleague):
    _attend(db_session, colleague, datetime(2024, 3, 6, 8, 30))

    early = AttendanceNotificationJob(db_session, cache, now=datetime(2024, 3, 6, 9, 30)).run("absent", day=DAY)
    assert early["absentCount"] == 2
    assert db_session.query(Notification).count() == 0

    late = AttendanceNotificationJob(db_session, cache, now=datetime(2024, 3, 6, 10, 0)).run("absent", day=DAY)
    assert late["absentCount"] == 2
    titles = {n.user_id: n.title for n in db_session.query(Notification).all()}
    assert titles == {admin_user.id: "Attendance Reminder", employee_user.id: "Attendance Reminder"}


def test_overtime_alert(db_session, cache, employee_user, colleague):
    _attend(db_session, employee_user, datetime(2024, 3, 6, 8, 0), datetime(2024, 3, 6, 17, 30))
    _attend(db_session, colleague, datetime(2024, 3, 6, 9, 0), datetime(2024, 3, 6, 17, 0))

    result = AttendanceNotificationJob(db_session, cache).run("overtime_alert", day=DAY)

    assert result["overtimeCount"] == 1
    notification = db_session.query(Notification).one()
    assert notification.user_id == employee_user.id
    assert notification.message.startswith("You worked 9.5 hours today")


def test_employee_id_narrows_the_run(db_session, cache, employee_user, employee, colleague):
    _attend(db_session, employee_user, datetime(2024, 3, 6, 9, 30))
    _attend(db_session, colleague, datetime(2024, 3, 6, 9, 45))

    result = AttendanceNotificationJob(db_session, cache).run("late_arrival", employee_id=employee.id, day=DAY)
    assert result["lateArrivals"] == 1


def test_unknown_type_is_rejected(db_session, cache):
    with pytest.raises(UnknownNotificationType):
        AttendanceNotificationJob(db_session, cache).run("birthday")


def test_function_endpoint(client, db_session, employee_user):
    _attend(db_session, employee_user, datetime(2024, 3, 6, 9, 15))

    response = client.post("/api/functions/attendance-notifications", json={"type": "late_arrival", "date": "2024-03-06"})
    assert response.status_code == 200
    assert response.json()["lateArrivals"] == 1

    response = client.post("/api/functions/attendance-notifications", json={"type": "nope"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid notification type"}


def test_function_key_is_enforced_when_configured(client, monkeypatch):
    from ems.core.config import settings

    monkeypatch.setattr(settings, "functions_api_key", "s3cret")
    body = {"type": "late_arrival"}
    assert client.post("/api/functions/attendance-notifications", json=body).status_code == 401
    response = client.post("/api/functions/attendance-notifications", json=body, headers={"X-Function-Key": "s3cret"})
    assert response.status_code == 200


def test_notification_inbox(client, db_session, cache, employee_user, auth_headers):
    service = NotificationService(db_session, cache)
    first = service.notify_user(employee_user.id, "Welcome", "Hello there")
    service.notify_user(employee_user.id, "Reminder", "Submit your timesheet")
    headers = auth_headers(employee_user)

    assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 2}

    response = client.patch(f"/api/notifications/{first.id}/read", headers=headers)
    assert response.json()["data"]["is_read"] is True
    unread = client.get("/api/notifications?unread_only=true", headers=headers).json()
    assert [n["title"] for n in unread] == ["Reminder"]

    assert client.post("/api/notifications/mark-all-read", headers=headers).json()["data"] == 1
    assert client.delete(f"/api/notifications/{first.id}", headers=headers).status_code == 200
    assert client.delete("/api/notifications", headers=headers).json()["data"] == 1
    assert client.get("/api/notifications", headers=headers).json() == []


def test_cannot_touch_someone_elses_notification(client, db_session, cache, admin_user, employee_user, auth_headers):
    other = NotificationService(db_session, cache).notify_user(admin_user.id, "Private", "Admin only")
    response = client.patch(f"/api/notifications/{other.id}/read", headers=auth_headers(employee_user))
    assert response.status_code == 404
