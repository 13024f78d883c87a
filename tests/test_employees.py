from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from ems.core.cache import CacheKey, Entity
from ems.core.exceptions import MutationFailedError
from ems.models.employee import EmergencyContact, Employee, EmploymentHistory
from ems.schemas.employee import EmployeeCreate, EmployeeSelfUpdate
from ems.services.employee_service import EmployeeService


def _payload(**overrides):
    payload = {
        "full_name": "Alex Smith",
        "email": "alex.smith@company.com",
        "department": "Finance",
        "position": "Analyst",
        "join_date": "2024-03-01",
        "base_salary": 4200,
        "emergency_contact": {"name": "Sam Smith", "phone": "555-0101", "relationship": "Sibling"},
    }
    payload.update(overrides)
    return payload


def test_create_employee_with_contact_and_history(client, admin_user, auth_headers):
    response = client.post("/api/employees", json=_payload(), headers=auth_headers(admin_user))
    assert response.status_code == 201
    body = response.json()
    assert body["notice"]["title"] == "Success"
    assert body["notice"]["description"] == "Employee Alex Smith added successfully"

    data = body["data"]
    assert data["status"] == "Active"
    assert data["emergency_contacts"][0]["relationship"] == "Sibling"
    history = data["employment_history"]
    assert len(history) == 1
    assert history[0]["title"] == "Analyst"
    assert history[0]["is_current"] is True


def test_list_reflects_create_after_invalidation(client, admin_user, auth_headers):
    headers = auth_headers(admin_user)
    assert client.get("/api/employees", headers=headers).json() == []

    client.post("/api/employees", json=_payload(), headers=headers)

    names = [e["full_name"] for e in client.get("/api/employees", headers=headers).json()]
    assert names == ["Alex Smith"]


def test_employee_cannot_list_employees(client, employee, employee_user, auth_headers):
    response = client.get("/api/employees", headers=auth_headers(employee_user))
    assert response.status_code == 403


def test_invalid_payload_is_rejected(client, admin_user, auth_headers):
    response = client.post("/api/employees", json=_payload(email="not-an-email"), headers=auth_headers(admin_user))
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "email"


def test_update_and_delete_employee(client, db_session, admin_user, employee, auth_headers):
    headers = auth_headers(admin_user)
    db_session.add(EmergencyContact(employee_id=employee.id, name="John Doe", phone="1"))
    db_session.commit()

    response = client.patch(f"/api/employees/{employee.id}", json={"status": "Probation"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "Probation"

    response = client.delete(f"/api/employees/{employee.id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"] == employee.id
    assert db_session.query(EmergencyContact).count() == 0
    assert client.get(f"/api/employees/{employee.id}", headers=headers).status_code == 404


def test_failed_create_rolls_back_and_keeps_cache(db_session, cache, monkeypatch):
    service = EmployeeService(db_session, cache)
    assert service.list_employees() == []
    key = CacheKey(Entity.EMPLOYEES)
    assert key in cache

    def failing_commit():
        raise OperationalError("INSERT INTO employees", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    data = EmployeeCreate.model_validate(_payload())
    with pytest.raises(MutationFailedError) as exc_info:
        service.create_employee(data)

    assert exc_info.value.message == "Failed to add employee"
    assert exc_info.value.title == "Error"
    assert key in cache
    assert db_session.query(Employee).count() == 0
    assert db_session.query(EmploymentHistory).count() == 0


def test_self_service_details(client, employee, employee_user, auth_headers):
    headers = auth_headers(employee_user)
    payload = {
        "address": "12 Main St",
        "emergency_contact": {"name": "John Doe", "phone": "555-0100", "relationship": "Spouse"},
    }
    response = client.patch("/api/employees/me/details", json=payload, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["notice"]["title"] == "Profile Updated"
    assert body["data"]["address"] == "12 Main St"

    # Second update replaces the contact rather than adding another
    payload["emergency_contact"]["phone"] = "555-0199"
    client.patch("/api/employees/me/details", json=payload, headers=headers)
    details = client.get("/api/employees/me/details", headers=headers).json()
    assert details["emergency_contact"] == {"name": "John Doe", "phone": "555-0199", "relationship": "Spouse"}


def test_self_service_without_record(db_session, cache, admin_user):
    from ems.core.exceptions import NotFoundError

    with pytest.raises(NotFoundError):
        EmployeeService(db_session, cache).update_own(admin_user.id, EmployeeSelfUpdate(address="x"))


def test_bulk_update_validates_fields(db_session, cache, employee):
    service = EmployeeService(db_session, cache)
    other = Employee(full_name="Bob Lee", email="bob@company.com", department="Sales", position="Rep",
                     status="Active", join_date=date(2022, 5, 1))
    db_session.add(other)
    db_session.commit()

    assert service.bulk_update([employee.id, other.id], {"department": "Operations"}) == 2
    assert {e.department for e in service.list_employees()} == {"Operations"}
