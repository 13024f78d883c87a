from datetime import date, datetime

import pytest

from ems.core.cache import CacheKey, Entity, list_scope
from ems.core.exceptions import AlreadyClockedInError
from ems.models.attendance import Attendance
from ems.models.employee import Employee
from ems.schemas.attendance import AttendanceResponse
from ems.services.attendance import AttendanceService, is_late, summarize, week_start, worked_hours

DAY = date(2024, 3, 6)  # a Wednesday


def test_worked_hours_rounds_and_ignores_open_sessions():
    assert worked_hours(datetime(2024, 3, 6, 9, 0), datetime(2024, 3, 6, 17, 20)) == 8.3
    assert worked_hours(datetime(2024, 3, 6, 9, 0), None) == 0.0


def test_late_cutoff_is_exclusive():
    assert is_late(datetime(2024, 3, 6, 9, 15))
    assert not is_late(datetime(2024, 3, 6, 9, 0))
    assert not is_late(datetime(2024, 3, 6, 8, 50))


def test_week_starts_on_sunday():
    assert week_start(DAY) == date(2024, 3, 3)
    assert week_start(date(2024, 3, 3)) == date(2024, 3, 3)


def test_summarize_today_and_week():
    def record(id, day, start, end):
        return AttendanceResponse(id=id, user_id=1, date=day, check_in=start, check_out=end)

    records = [
        record(4, DAY, datetime(2024, 3, 6, 14, 0), None),
        record(3, DAY, datetime(2024, 3, 6, 9, 0), datetime(2024, 3, 6, 12, 30)),
        record(2, date(2024, 3, 4), datetime(2024, 3, 4, 9, 0), datetime(2024, 3, 4, 17, 0)),
        record(1, date(2024, 3, 1), datetime(2024, 3, 1, 9, 0), datetime(2024, 3, 1, 17, 0)),
    ]
    stats = summarize(records, DAY)
    assert stats.today_hours == 3.5
    assert stats.weekly_hours == 11.5
    assert stats.is_clocked_in is True
    assert stats.open_record_id == 4


def test_second_clock_in_is_rejected(db_session, cache, employee_user, employee):
    service = AttendanceService(db_session, cache)
    first = service.clock_in(employee_user.id, datetime(2024, 3, 6, 8, 55))
    assert first.notice.title == "Clocked In"
    assert first.data.employee_id == employee.id

    with pytest.raises(AlreadyClockedInError):
        service.clock_in(employee_user.id, datetime(2024, 3, 6, 9, 5))
    assert db_session.query(Attendance).count() == 1


def test_clock_in_again_after_clock_out(db_session, cache, employee_user, employee):
    service = AttendanceService(db_session, cache)
    morning = service.clock_in(employee_user.id, datetime(2024, 3, 6, 9, 0)).data
    out = service.clock_out(employee_user.id, morning.id, datetime(2024, 3, 6, 12, 0))
    assert out.data.hours == 3.0
    assert out.notice.description == "Successfully clocked out. Total hours: 3.0h"

    afternoon = service.clock_in(employee_user.id, datetime(2024, 3, 6, 13, 0))
    assert afternoon.data.id != morning.id


def test_clock_in_invalidates_stats(db_session, cache, admin_user, employee_user, employee):
    service = AttendanceService(db_session, cache)
    assert service.day_stats(DAY).present == 0
    assert CacheKey(Entity.ATTENDANCE_STATS, list_scope(date=DAY)) in cache

    service.clock_in(employee_user.id, datetime(2024, 3, 6, 9, 30))

    stats = service.day_stats(DAY)
    assert stats.present == 1
    assert stats.late_arrivals == 1
    assert stats.total_employees == 1
    assert stats.absent == 0


def test_day_stats_counts_non_terminated_employees(db_session, cache, employee):
    db_session.add(Employee(full_name="Old Hand", email="old@company.com", department="Ops", position="Lead",
                            status="Terminated", join_date=date(2019, 1, 1)))
    db_session.add(Employee(full_name="New Hand", email="new@company.com", department="Ops", position="Intern",
                            status="Probation", join_date=date(2024, 1, 1)))
    db_session.commit()
    stats = AttendanceService(db_session, cache).day_stats(DAY)
    assert stats.total_employees == 2
    assert stats.absent == 2


def test_clock_in_and_out_over_http(client, employee_user, employee, auth_headers):
    headers = auth_headers(employee_user)
    response = client.post("/api/attendance/clock-in", json={"notes": "office"}, headers=headers)
    assert response.status_code == 201
    record_id = response.json()["data"]["id"]

    again = client.post("/api/attendance/clock-in", json={}, headers=headers)
    assert again.status_code == 409
    assert again.json()["errors"][0]["title"] == "Clock In Failed"

    stats = client.get("/api/attendance/me/stats", headers=headers).json()
    assert stats["is_clocked_in"] is True
    assert stats["open_record_id"] == record_id

    response = client.post(f"/api/attendance/{record_id}/clock-out", json={}, headers=headers)
    assert response.status_code == 200
    assert response.json()["notice"]["title"] == "Clocked Out"
    assert client.get("/api/attendance/me/stats", headers=headers).json()["is_clocked_in"] is False


def test_cannot_clock_out_someone_else(client, db_session, admin_user, employee_user, employee, auth_headers):
    record = Attendance(user_id=admin_user.id, date=date.today(), check_in=datetime.now(), status="present")
    db_session.add(record)
    db_session.commit()
    response = client.post(f"/api/attendance/{record.id}/clock-out", json={}, headers=auth_headers(employee_user))
    assert response.status_code == 404


def test_admin_corrects_and_deletes_record(client, db_session, admin_user, employee_user, auth_headers):
    record = Attendance(user_id=employee_user.id, date=DAY, check_in=datetime(2024, 3, 6, 9, 40), status="present")
    db_session.add(record)
    db_session.commit()
    headers = auth_headers(admin_user)

    response = client.patch(
        f"/api/attendance/{record.id}", json={"check_out": "2024-03-06T18:10:00"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["hours"] == 8.5

    assert client.get("/api/attendance/stats?day=2024-03-06", headers=headers).json()["average_hours"] == 8.5
    assert client.delete(f"/api/attendance/{record.id}", headers=headers).status_code == 200
    assert client.get("/api/attendance", headers=headers).json() == []
