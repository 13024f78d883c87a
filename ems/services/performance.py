import logging
from datetime import date
from typing import List, Optional

from ems.core.cache import Entity, user_scope
from ems.core.exceptions import NotFoundError
from ems.core.schemas import Notice
from ems.models.employee import Employee
from ems.models.performance import (
    GoalStatus,
    PerformanceFeedback,
    PerformanceGoal,
    PerformanceReview,
    ReviewStatus,
)
from ems.schemas.performance import (
    FeedbackCreate,
    FeedbackResponse,
    GoalCreate,
    GoalResponse,
    GoalUpdate,
    PerformanceStats,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from ems.services.base import CrudService, MutationResult

logger = logging.getLogger(__name__)


def goal_status(progress: int, deadline: Optional[date], today: date) -> str:
    if progress >= 100:
        return GoalStatus.COMPLETED.value
    if deadline is not None and deadline < today:
        return GoalStatus.OVERDUE.value
    return GoalStatus.ACTIVE.value


def _employee_for_user(db, user_id: int) -> Optional[Employee]:
    return db.query(Employee).filter(Employee.user_id == user_id).first()


class PerformanceReviewService(CrudService):
    model = PerformanceReview
    entity = Entity.PERFORMANCE_REVIEWS
    label = "performance review"
    response_schema = ReviewResponse

    def list_all(self) -> List[ReviewResponse]:
        return self.fetch()

    def list_mine(self, user_id: int) -> List[ReviewResponse]:
        return self.fetch(user_scope(user_id), PerformanceReview.user_id == user_id)

    def create_review(self, reviewer_id: int, data: ReviewCreate) -> MutationResult:
        employee = self.db.query(Employee).filter(Employee.id == data.employee_id).first()
        if employee is None:
            raise NotFoundError("Employee")
        values = data.model_dump()
        values["status"] = data.status.value
        # Owned by the reviewed employee so it shows up in their own list
        values.update(user_id=employee.user_id, reviewer_id=reviewer_id)
        return self.create(values, Notice(title="Success", description="Performance review created successfully"))

    def update_review(self, review_id: int, data: ReviewUpdate) -> MutationResult:
        values = data.model_dump(exclude_unset=True)
        if values.get("status") is not None:
            values["status"] = values["status"].value
        return self.update(review_id, values, Notice(title="Success", description="Performance review updated successfully"))

    def delete_review(self, review_id: int) -> MutationResult:
        return self.delete(review_id, Notice(title="Success", description="Performance review deleted successfully"))


class PerformanceGoalService(CrudService):
    model = PerformanceGoal
    entity = Entity.PERFORMANCE_GOALS
    label = "goal"
    response_schema = GoalResponse

    def list_all(self) -> List[GoalResponse]:
        return self.fetch()

    def list_mine(self, user_id: int) -> List[GoalResponse]:
        return self.fetch(user_scope(user_id), PerformanceGoal.user_id == user_id)

    def create_goal(self, user_id: int, data: GoalCreate, today: date) -> MutationResult:
        owner_id = user_id
        employee_id = data.employee_id
        if employee_id is not None:
            employee = self.db.query(Employee).filter(Employee.id == employee_id).first()
            if employee is None:
                raise NotFoundError("Employee")
            owner_id = employee.user_id or user_id
        else:
            own = _employee_for_user(self.db, user_id)
            employee_id = own.id if own else None
        values = data.model_dump()
        values.update(
            user_id=owner_id,
            employee_id=employee_id,
            status=goal_status(data.progress, data.deadline, today),
        )
        return self.create(values, Notice(title="Success", description="Goal created successfully"))

    def update_goal(self, goal_id: int, data: GoalUpdate, today: date) -> MutationResult:
        values = data.model_dump(exclude_unset=True)

        def restatus(row: PerformanceGoal):
            row.status = goal_status(row.progress or 0, row.deadline, today)

        return self.update(goal_id, values, Notice(title="Success", description="Goal updated successfully"),
                           before_commit=restatus)

    def update_progress(self, goal_id: int, progress: int, today: date,
                        user_id: Optional[int] = None) -> MutationResult:
        """Set progress; status follows (completed, overdue, or active)."""
        row = self.get_or_404(goal_id)
        if user_id is not None and row.user_id != user_id:
            raise NotFoundError("Goal")
        row.progress = progress
        row.status = goal_status(progress, row.deadline, today)
        self.commit_or_fail(self.entity, "Failed to update goal progress")
        self.db.refresh(row)
        return MutationResult(
            self.to_response(row),
            Notice(title="Progress Updated", description=f"Goal progress set to {progress}%."),
        )

    def delete_goal(self, goal_id: int) -> MutationResult:
        return self.delete(goal_id, Notice(title="Success", description="Goal deleted successfully"))


class PerformanceFeedbackService(CrudService):
    model = PerformanceFeedback
    entity = Entity.PERFORMANCE_FEEDBACK
    label = "feedback"
    response_schema = FeedbackResponse

    def list_all(self) -> List[FeedbackResponse]:
        return self.fetch()

    def list_mine(self, user_id: int) -> List[FeedbackResponse]:
        """Feedback addressed to the caller's employee record."""
        employee = _employee_for_user(self.db, user_id)
        if employee is None:
            return []
        return self.fetch(user_scope(user_id), PerformanceFeedback.to_employee_id == employee.id)

    def create_feedback(self, user_id: int, data: FeedbackCreate) -> MutationResult:
        recipient = self.db.query(Employee).filter(Employee.id == data.to_employee_id).first()
        if recipient is None:
            raise NotFoundError("Employee")
        sender = _employee_for_user(self.db, user_id)
        values = {
            "user_id": user_id,
            "from_employee_id": sender.id if sender else None,
            "from_employee": None if data.is_anonymous else (sender.full_name if sender else None),
            "to_employee_id": recipient.id,
            "to_employee": recipient.full_name,
            "type": data.type.value,
            "comments": data.comments,
            "is_anonymous": data.is_anonymous,
        }
        return self.create(values, Notice(title="Success", description="Feedback submitted successfully"))


def my_performance_stats(db, cache, user_id: int) -> PerformanceStats:
    reviews = PerformanceReviewService(db, cache).list_mine(user_id)
    goals = PerformanceGoalService(db, cache).list_mine(user_id)
    feedback = PerformanceFeedbackService(db, cache).list_mine(user_id)

    ratings = [r.overall_rating for r in reviews if r.overall_rating is not None]
    completed = sum(1 for g in goals if g.status == GoalStatus.COMPLETED.value)
    return PerformanceStats(
        average_rating=round(sum(ratings) / len(ratings), 2) if ratings else None,
        goal_completion_rate=round(completed / len(goals) * 100, 1) if goals else 0.0,
        total_goals=len(goals),
        completed_goals=completed,
        pending_reviews=sum(1 for r in reviews if r.status == ReviewStatus.DRAFT.value),
        feedback_count=len(feedback),
    )
