from datetime import date

from fastapi import status

PASSWORD = "Password123!"


def test_login_success(client, admin_user):
    response = client.post("/api/auth/login", json={"email": admin_user.email, "password": PASSWORD})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "admin"


def test_login_invalid_credentials(client):
    response = client.post("/api/auth/login", json={"email": "nobody@company.com", "password": "wrong"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "AUTH_FAILED"


def test_login_is_case_insensitive(client, employee_user):
    response = client.post("/api/auth/login", json={"email": "Jane.Doe@Company.com", "password": PASSWORD})
    assert response.status_code == 200


def test_inactive_user_cannot_login(client, db_session, employee_user):
    employee_user.is_active = False
    db_session.commit()
    response = client.post("/api/auth/login", json={"email": employee_user.email, "password": PASSWORD})
    assert response.status_code == 401


def test_first_login_links_employee_by_email(client, db_session, employee_user):
    from ems.models.employee import Employee

    record = Employee(full_name="Jane Doe", email="jane.doe@company.com", department="Sales",
                      position="Rep", status="Active", join_date=date(2024, 2, 1))
    db_session.add(record)
    db_session.commit()

    response = client.post("/api/auth/login", json={"email": employee_user.email, "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["employee_id"] == record.id
    db_session.refresh(record)
    assert record.user_id == employee_user.id


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401


def test_me_returns_current_user(client, employee, employee_user, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers(employee_user))
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == employee_user.email
    assert data["employee_id"] == employee.id


def test_logout_revokes_token(client, employee, employee_user, get_token):
    token = get_token(employee_user)
    headers = {"Authorization": f"Bearer {token}"}

    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["data"]["is_authenticated"] is False
    assert body["data"]["employee"] is None
    assert body["notice"]["title"] == "Signed out"

    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_refresh_rotates_session(client, employee_user):
    login = client.post("/api/auth/login", json={"email": employee_user.email, "password": PASSWORD}).json()

    response = client.post("/api/auth/refresh", json={"refresh_token": login["refresh_token"]})
    assert response.status_code == 200
    rotated = response.json()
    assert rotated["refresh_token"] != login["refresh_token"]

    # The old session is gone, the new one works
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {login['access_token']}"}).status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {rotated['access_token']}"}).status_code == 200
    assert client.post("/api/auth/refresh", json={"refresh_token": login["refresh_token"]}).status_code == 401


def test_session_endpoint_reports_employee_profile(client, employee, employee_user, auth_headers):
    response = client.get("/api/auth/session", headers=auth_headers(employee_user))
    assert response.status_code == 200
    data = response.json()
    assert data["is_authenticated"] is True
    assert data["is_loading"] is False
    assert data["employee"]["name"] == "Jane Doe"
    assert data["employee"]["role"] == "Developer"
    assert data["employee"]["emergency_contact"] == {"name": "", "phone": "", "relationship": ""}


def test_admin_creates_user(client, admin_user, auth_headers):
    payload = {"email": "new.hire@company.com", "password": "Secret123!", "full_name": "New Hire"}
    response = client.post("/api/auth/users", json=payload, headers=auth_headers(admin_user))
    assert response.status_code == 201
    assert response.json()["role"] == "employee"

    duplicate = client.post("/api/auth/users", json=payload, headers=auth_headers(admin_user))
    assert duplicate.status_code == 422
    assert duplicate.json()["errors"][0]["msg"] == "A user with this email already exists"


def test_employee_cannot_create_user(client, employee_user, auth_headers):
    payload = {"email": "other@company.com", "password": "Secret123!"}
    response = client.post("/api/auth/users", json=payload, headers=auth_headers(employee_user))
    assert response.status_code == 403
