"""
Global search across the records a user can see, plus the per-user list of
recent search strings.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ems.core.config import settings
from ems.core.exceptions import MutationFailedError
from ems.models.document import Document
from ems.models.employee import Employee
from ems.models.leave_request import LeaveRequest
from ems.models.notification import Notification
from ems.models.recent_search import RecentSearch
from ems.models.user import User
from ems.schemas.search import SearchResult

logger = logging.getLogger(__name__)

SUBTITLE_PREVIEW = 60


def _preview(text: str) -> str:
    return (text or "")[:SUBTITLE_PREVIEW] + "..."


class GlobalSearch:
    def __init__(self, db: Session, user: User, per_source: int = None):
        self.db = db
        self.user = user
        self.per_source = per_source or settings.search_results_per_source

    def search(self, query: str) -> List[SearchResult]:
        term = (query or "").strip()
        if not term:
            return []
        pattern = f"%{term}%"
        sources: List[Callable[[str], List[SearchResult]]] = []
        if self.user.is_admin:
            sources.append(self._employees)
        sources += [self._leave_requests, self._notifications, self._documents]

        results: List[SearchResult] = []
        for source in sources:
            try:
                results.extend(source(pattern))
            except Exception as e:
                # A failing source contributes nothing; the others still answer
                logger.error(f"Search source {source.__name__} failed: {e}", exc_info=True)
                self.db.rollback()
        return results

    def _employees(self, pattern: str) -> List[SearchResult]:
        rows = (
            self.db.query(Employee)
            .filter(or_(
                Employee.full_name.ilike(pattern),
                Employee.email.ilike(pattern),
                Employee.position.ilike(pattern),
                Employee.department.ilike(pattern),
            ))
            .order_by(Employee.full_name)
            .limit(self.per_source)
            .all()
        )
        return [
            SearchResult(
                id=emp.id,
                title=emp.full_name,
                subtitle=f"{emp.position} - {emp.department}",
                type="employee",
                url=f"/employees?id={emp.id}",
            )
            for emp in rows
        ]

    def _leave_requests(self, pattern: str) -> List[SearchResult]:
        rows = (
            self.db.query(LeaveRequest)
            .filter(
                LeaveRequest.user_id == self.user.id,
                or_(LeaveRequest.leave_type.ilike(pattern), LeaveRequest.status.ilike(pattern)),
            )
            .order_by(LeaveRequest.applied_date.desc(), LeaveRequest.id.desc())
            .limit(self.per_source)
            .all()
        )
        return [
            SearchResult(
                id=leave.id,
                title=f"{leave.leave_type} Leave",
                subtitle=f"{leave.start_date} to {leave.end_date} - {leave.status}",
                type="leave",
                url=f"/leave-management?id={leave.id}",
                date=leave.start_date.isoformat(),
            )
            for leave in rows
        ]

    def _notifications(self, pattern: str) -> List[SearchResult]:
        rows = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == self.user.id,
                or_(Notification.title.ilike(pattern), Notification.message.ilike(pattern)),
            )
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(self.per_source)
            .all()
        )
        return [
            SearchResult(
                id=notif.id,
                title=notif.title,
                subtitle=_preview(notif.message),
                type="notification",
                url="/notifications",
                date=notif.created_at.isoformat() if notif.created_at else None,
            )
            for notif in rows
        ]

    def _documents(self, pattern: str) -> List[SearchResult]:
        rows = (
            self.db.query(Document)
            .filter(
                Document.user_id == self.user.id,
                or_(Document.document_name.ilike(pattern), Document.document_type.ilike(pattern)),
            )
            .order_by(Document.upload_date.desc(), Document.id.desc())
            .limit(self.per_source)
            .all()
        )
        return [
            SearchResult(
                id=doc.id,
                title=doc.document_name,
                subtitle=f"{doc.document_type}",
                type="document",
                url="/employee-dashboard?tab=documents",
                date=doc.upload_date.isoformat() if doc.upload_date else None,
            )
            for doc in rows
        ]


class RecentSearchStore:
    """
    Most-recent-first list of a user's search strings, kept in ``recent_searches``.

    - Re-adding an existing query moves it to the front.
    - The list never exceeds ``limit`` entries; older rows are deleted.
    - Blank queries are ignored.
    """

    def __init__(self, db: Session, user_id: int, limit: int = None):
        self.db = db
        self.user_id = user_id
        self.limit = limit or settings.recent_searches_limit

    def _rows(self):
        return (
            self.db.query(RecentSearch)
            .filter(RecentSearch.user_id == self.user_id)
            .order_by(RecentSearch.searched_at.desc(), RecentSearch.id.desc())
        )

    def load(self) -> List[str]:
        return [row.query for row in self._rows().limit(self.limit).all()]

    def add(self, query: str) -> List[str]:
        query = (query or "").strip()
        if not query:
            return self.load()

        now = datetime.now(timezone.utc)
        try:
            self._touch(query, now)
        except IntegrityError:
            # Another request inserted the same query first
            self.db.rollback()
            self._touch(query, now)

        for stale in self._rows().offset(self.limit).all():
            self.db.delete(stale)
        self._commit("Failed to save recent search")
        return self.load()

    def clear(self) -> List[str]:
        self.db.query(RecentSearch).filter(RecentSearch.user_id == self.user_id).delete(synchronize_session=False)
        self._commit("Failed to clear recent searches")
        return []

    def _touch(self, query: str, now: datetime):
        row = self._rows().filter(RecentSearch.query == query).first()
        if row is None:
            self.db.add(RecentSearch(user_id=self.user_id, query=query, searched_at=now))
        else:
            row.searched_at = now
        self.db.flush()

    def _commit(self, failure: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{failure} for user {self.user_id}: {e}", exc_info=True)
            raise MutationFailedError(title="Error", message=failure) from e
