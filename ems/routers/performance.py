from datetime import date
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.schemas import ApiResponse
from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_cache, get_current_user, require_admin
from ems.schemas.performance import (
    FeedbackCreate,
    FeedbackResponse,
    GoalCreate,
    GoalProgressUpdate,
    GoalResponse,
    GoalUpdate,
    PerformanceStats,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from ems.services.performance import (
    PerformanceFeedbackService,
    PerformanceGoalService,
    PerformanceReviewService,
    my_performance_stats,
)

router = APIRouter(
    prefix="/performance",
    tags=["performance"]
)


def _deps(db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)):
    return db, cache


# --- Reviews ---

@router.get("/reviews", response_model=List[ReviewResponse])
def list_reviews(deps=Depends(_deps), _: User = Depends(require_admin())):
    return PerformanceReviewService(*deps).list_all()


@router.get("/reviews/me", response_model=List[ReviewResponse])
def list_my_reviews(deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    return PerformanceReviewService(*deps).list_mine(current_user.id)


@router.post("/reviews", response_model=ApiResponse[ReviewResponse], status_code=status.HTTP_201_CREATED)
def create_review(data: ReviewCreate, deps=Depends(_deps), reviewer: User = Depends(require_admin())):
    result = PerformanceReviewService(*deps).create_review(reviewer.id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/reviews/{review_id}", response_model=ApiResponse[ReviewResponse])
def update_review(review_id: int, data: ReviewUpdate, deps=Depends(_deps), _: User = Depends(require_admin())):
    result = PerformanceReviewService(*deps).update_review(review_id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/reviews/{review_id}", response_model=ApiResponse[int])
def delete_review(review_id: int, deps=Depends(_deps), _: User = Depends(require_admin())):
    result = PerformanceReviewService(*deps).delete_review(review_id)
    return ApiResponse.ok(result.data, notice=result.notice)


# --- Goals ---

@router.get("/goals", response_model=List[GoalResponse])
def list_goals(deps=Depends(_deps), _: User = Depends(require_admin())):
    return PerformanceGoalService(*deps).list_all()


@router.get("/goals/me", response_model=List[GoalResponse])
def list_my_goals(deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    return PerformanceGoalService(*deps).list_mine(current_user.id)


@router.post("/goals", response_model=ApiResponse[GoalResponse], status_code=status.HTTP_201_CREATED)
def create_goal(data: GoalCreate, deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    result = PerformanceGoalService(*deps).create_goal(current_user.id, data, date.today())
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/goals/{goal_id}", response_model=ApiResponse[GoalResponse])
def update_goal(goal_id: int, data: GoalUpdate, deps=Depends(_deps), _: User = Depends(require_admin())):
    result = PerformanceGoalService(*deps).update_goal(goal_id, data, date.today())
    return ApiResponse.ok(result.data, notice=result.notice)


@router.patch("/goals/{goal_id}/progress", response_model=ApiResponse[GoalResponse])
def update_goal_progress(
    goal_id: int, body: GoalProgressUpdate, deps=Depends(_deps), current_user: User = Depends(get_current_user)
):
    owner = None if current_user.is_admin else current_user.id
    result = PerformanceGoalService(*deps).update_progress(goal_id, body.progress, date.today(), user_id=owner)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/goals/{goal_id}", response_model=ApiResponse[int])
def delete_goal(goal_id: int, deps=Depends(_deps), _: User = Depends(require_admin())):
    result = PerformanceGoalService(*deps).delete_goal(goal_id)
    return ApiResponse.ok(result.data, notice=result.notice)


# --- Feedback ---

@router.get("/feedback", response_model=List[FeedbackResponse])
def list_feedback(deps=Depends(_deps), _: User = Depends(require_admin())):
    return PerformanceFeedbackService(*deps).list_all()


@router.get("/feedback/me", response_model=List[FeedbackResponse])
def list_my_feedback(deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    return PerformanceFeedbackService(*deps).list_mine(current_user.id)


@router.post("/feedback", response_model=ApiResponse[FeedbackResponse], status_code=status.HTTP_201_CREATED)
def create_feedback(data: FeedbackCreate, deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    result = PerformanceFeedbackService(*deps).create_feedback(current_user.id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.get("/stats/me", response_model=PerformanceStats)
def my_stats(deps=Depends(_deps), current_user: User = Depends(get_current_user)):
    return my_performance_stats(*deps, current_user.id)
