from datetime import date, timedelta

from ems.schemas.performance import GoalCreate
from ems.services.performance import PerformanceGoalService, goal_status

TODAY = date(2024, 6, 1)


def test_goal_status_rules():
    assert goal_status(100, TODAY - timedelta(days=3), TODAY) == "Completed"
    assert goal_status(40, TODAY - timedelta(days=1), TODAY) == "Overdue"
    assert goal_status(40, TODAY, TODAY) == "Active"
    assert goal_status(0, None, TODAY) == "Active"


def test_progress_update_moves_status(db_session, cache, employee_user, employee):
    service = PerformanceGoalService(db_session, cache)
    goal = service.create_goal(employee_user.id, GoalCreate(title="Ship v2", deadline=TODAY + timedelta(days=10)), TODAY).data
    assert goal.employee_id == employee.id
    assert goal.status == "Active"

    result = service.update_progress(goal.id, 100, TODAY, user_id=employee_user.id)
    assert result.data.status == "Completed"
    assert result.notice.description == "Goal progress set to 100%."

    result = service.update_progress(goal.id, 60, TODAY + timedelta(days=30))
    assert result.data.status == "Overdue"


def test_review_lifecycle(client, admin_user, employee_user, employee, auth_headers):
    admin = auth_headers(admin_user)
    payload = {
        "employee_id": employee.id,
        "review_period_start": "2024-01-01",
        "review_period_end": "2024-06-30",
        "overall_rating": 4,
        "strengths": "Ownership",
    }
    created = client.post("/api/performance/reviews", json=payload, headers=admin)
    assert created.status_code == 201
    review = created.json()["data"]
    assert review["reviewer_id"] == admin_user.id
    assert review["status"] == "draft"

    mine = client.get("/api/performance/reviews/me", headers=auth_headers(employee_user)).json()
    assert [r["id"] for r in mine] == [review["id"]]

    updated = client.patch(f"/api/performance/reviews/{review['id']}", json={"status": "completed"}, headers=admin)
    assert updated.json()["data"]["status"] == "completed"

    assert client.delete(f"/api/performance/reviews/{review['id']}", headers=admin).status_code == 200
    assert client.get("/api/performance/reviews", headers=admin).json() == []


def test_employee_cannot_create_review(client, employee_user, employee, auth_headers):
    payload = {"employee_id": employee.id, "review_period_start": "2024-01-01", "review_period_end": "2024-06-30"}
    response = client.post("/api/performance/reviews", json=payload, headers=auth_headers(employee_user))
    assert response.status_code == 403


def test_goal_progress_over_http(client, admin_user, employee_user, employee, auth_headers):
    headers = auth_headers(employee_user)
    goal = client.post("/api/performance/goals", json={"title": "Learn Rust"}, headers=headers).json()["data"]

    response = client.patch(f"/api/performance/goals/{goal['id']}/progress", json={"progress": 100}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "Completed"

    too_much = client.patch(f"/api/performance/goals/{goal['id']}/progress", json={"progress": 120}, headers=headers)
    assert too_much.status_code == 422


def test_employee_cannot_move_someone_elses_goal(client, admin_user, employee_user, employee, auth_headers):
    goal = client.post(
        "/api/performance/goals", json={"title": "Admin goal"}, headers=auth_headers(admin_user)
    ).json()["data"]
    response = client.patch(
        f"/api/performance/goals/{goal['id']}/progress", json={"progress": 50}, headers=auth_headers(employee_user)
    )
    assert response.status_code == 404


def test_anonymous_feedback_hides_sender(client, db_session, admin_user, employee_user, employee, auth_headers):
    from ems.models.employee import Employee

    sender = Employee(user_id=admin_user.id, full_name="System Admin", email=admin_user.email,
                      department="HR", position="Manager", status="Active", join_date=date(2020, 1, 1))
    db_session.add(sender)
    db_session.commit()
    admin = auth_headers(admin_user)

    client.post("/api/performance/feedback", json={"to_employee_id": employee.id, "comments": "Great demo"}, headers=admin)
    client.post("/api/performance/feedback", json={"to_employee_id": employee.id, "comments": "Docs please",
                                                   "type": "Constructive", "is_anonymous": True}, headers=admin)

    received = client.get("/api/performance/feedback/me", headers=auth_headers(employee_user)).json()
    by_comment = {f["comments"]: f for f in received}
    assert by_comment["Great demo"]["from_employee"] == "System Admin"
    assert by_comment["Docs please"]["from_employee"] is None
    assert by_comment["Docs please"]["to_employee"] == "Jane Doe"


def test_my_performance_stats(client, admin_user, employee_user, employee, auth_headers):
    admin = auth_headers(admin_user)
    for rating, status in ((4, "completed"), (5, "completed"), (None, "draft")):
        payload = {"employee_id": employee.id, "review_period_start": "2024-01-01",
                   "review_period_end": "2024-06-30", "status": status}
        if rating:
            payload["overall_rating"] = rating
        client.post("/api/performance/reviews", json=payload, headers=admin)

    headers = auth_headers(employee_user)
    client.post("/api/performance/goals", json={"title": "A", "progress": 100}, headers=headers)
    client.post("/api/performance/goals", json={"title": "B", "progress": 20}, headers=headers)

    stats = client.get("/api/performance/stats/me", headers=headers).json()
    assert stats["average_rating"] == 4.5
    assert stats["total_goals"] == 2
    assert stats["completed_goals"] == 1
    assert stats["goal_completion_rate"] == 50.0
    assert stats["pending_reviews"] == 1
    assert stats["feedback_count"] == 0
