from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional
from ems.models.performance import ReviewStatus, FeedbackType


class ReviewCreate(BaseModel):
    employee_id: int
    review_period_start: date
    review_period_end: date
    overall_rating: Optional[float] = Field(default=None, ge=1, le=5)
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    goals: Optional[str] = None
    comments: Optional[str] = None
    status: ReviewStatus = ReviewStatus.DRAFT


class ReviewUpdate(BaseModel):
    overall_rating: Optional[float] = Field(default=None, ge=1, le=5)
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    goals: Optional[str] = None
    comments: Optional[str] = None
    status: Optional[ReviewStatus] = None


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    reviewer_id: Optional[int] = None
    review_period_start: date
    review_period_end: date
    overall_rating: Optional[float] = None
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    goals: Optional[str] = None
    comments: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class GoalCreate(BaseModel):
    employee_id: Optional[int] = None
    title: str = Field(min_length=1)
    description: Optional[str] = None
    deadline: Optional[date] = None
    category: Optional[str] = None
    progress: int = Field(default=0, ge=0, le=100)


class GoalUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[date] = None
    category: Optional[str] = None


class GoalProgressUpdate(BaseModel):
    progress: int = Field(ge=0, le=100)


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    employee_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    progress: int
    deadline: Optional[date] = None
    category: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class FeedbackCreate(BaseModel):
    to_employee_id: int
    type: FeedbackType = FeedbackType.POSITIVE
    comments: str = Field(min_length=1)
    is_anonymous: bool = False


class FeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    from_employee_id: Optional[int] = None
    to_employee_id: Optional[int] = None
    from_employee: Optional[str] = None
    to_employee: Optional[str] = None
    type: str
    comments: str
    is_anonymous: bool
    created_at: Optional[datetime] = None


class PerformanceStats(BaseModel):
    average_rating: Optional[float] = None
    goal_completion_rate: float
    total_goals: int
    completed_goals: int
    pending_reviews: int
    feedback_count: int
