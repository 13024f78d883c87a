"""
Service base classes.

Every table gets one ``CrudService`` subclass. Reads go through the
application's ``QueryCache``; writes commit first and only then invalidate,
so a failed write leaves previously cached data in place.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ems.core.cache import ALL_SCOPE, CacheKey, QueryCache
from ems.core.exceptions import MutationFailedError, NotFoundError
from ems.core.schemas import Notice
from ems.database import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MutationResult(Generic[T]):
    data: T
    notice: Notice


class BaseService:
    def __init__(self, db: Session, cache: QueryCache):
        self.db = db
        self.cache = cache

    def commit_or_fail(self, entity: str, failure: str, *extra_entities: str, title: str = "Error"):
        """
        Commit the unit of work and invalidate ``entity`` (plus any extra
        entities). On a storage error the session is rolled back, nothing is
        invalidated and ``MutationFailedError`` carries the user notice.
        """
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{failure}: {e}", exc_info=True)
            raise MutationFailedError(title=title, message=failure) from e
        for name in (entity,) + extra_entities:
            self.cache.invalidate(name)


class CrudService(BaseService):
    model: Type[Base] = None
    entity: str = None
    label: str = "record"
    response_schema = None

    def default_order(self) -> List[Any]:
        return [self.model.created_at.desc()]

    def to_response(self, row):
        return self.response_schema.model_validate(row)

    def fetch(
        self,
        scope: str = ALL_SCOPE,
        *criteria,
        order_by: Optional[List[Any]] = None,
        limit: Optional[int] = None,
    ) -> list:
        """One read against the table, in server order, cached under ``(entity, scope)``."""
        def load():
            query = self.db.query(self.model).filter(*criteria)
            query = query.order_by(*(order_by if order_by is not None else self.default_order()))
            if limit:
                query = query.limit(limit)
            return [self.to_response(row) for row in query.all()]

        return self.cache.get_or_load(CacheKey(self.entity, scope), load)

    def get_or_404(self, record_id: int):
        row = self.db.query(self.model).filter(self.model.id == record_id).first()
        if row is None:
            raise NotFoundError(self.label.capitalize())
        return row

    def create(self, values: Dict[str, Any], notice: Notice) -> MutationResult:
        row = self.model(**values)
        self.db.add(row)
        self.commit_or_fail(self.entity, f"Failed to create {self.label}")
        self.db.refresh(row)
        logger.info(f"Created {self.label} {row.id}")
        return MutationResult(self.to_response(row), notice)

    def update(self, record_id: int, values: Dict[str, Any], notice: Notice,
               before_commit: Optional[Callable[[Any], None]] = None) -> MutationResult:
        row = self.get_or_404(record_id)
        for field, value in values.items():
            setattr(row, field, value)
        if before_commit:
            before_commit(row)
        self.commit_or_fail(self.entity, f"Failed to update {self.label}")
        self.db.refresh(row)
        return MutationResult(self.to_response(row), notice)

    def delete(self, record_id: int, notice: Notice) -> MutationResult:
        row = self.get_or_404(record_id)
        self.db.delete(row)
        self.commit_or_fail(self.entity, f"Failed to delete {self.label}")
        logger.info(f"Deleted {self.label} {record_id}")
        return MutationResult(record_id, notice)
