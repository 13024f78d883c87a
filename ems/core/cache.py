"""
Query cache for per-entity reads.

Entries are keyed by ``CacheKey(entity, scope)``:
- ``scope == "all"`` holds admin-wide lists,
- ``scope`` starting with ``"user:<id>"`` holds a person's own view
  ("my leave requests", "my balances", ...).

Mutations never write into the cache. After a successful commit the service
calls ``invalidate(entity)``, which drops every scope of every entity listed in
``INVALIDATION_EDGES[entity]``. A failed write invalidates nothing, so the
previously cached state stays visible.
"""
import logging
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)


class Entity:
    EMPLOYEES = "employees"
    LEAVE_TYPES = "leave_types"
    LEAVE_BALANCES = "leave_balances"
    LEAVE_REQUESTS = "leave_requests"
    HOLIDAYS = "holidays"
    ATTENDANCE = "attendance"
    ATTENDANCE_STATS = "attendance_stats"
    PAYROLL_RUNS = "payroll_runs"
    PAYSLIPS = "payslips"
    SALARY_COMPONENTS = "salary_components"
    PERFORMANCE_REVIEWS = "performance_reviews"
    PERFORMANCE_GOALS = "performance_goals"
    PERFORMANCE_FEEDBACK = "performance_feedback"
    NOTIFICATIONS = "notifications"
    DOCUMENTS = "documents"


# entity mutated -> entities whose cached views become stale
INVALIDATION_EDGES: Dict[str, Tuple[str, ...]] = {
    Entity.EMPLOYEES: (Entity.EMPLOYEES, Entity.ATTENDANCE_STATS),
    Entity.LEAVE_TYPES: (Entity.LEAVE_TYPES,),
    Entity.LEAVE_BALANCES: (Entity.LEAVE_BALANCES,),
    Entity.LEAVE_REQUESTS: (Entity.LEAVE_REQUESTS,),
    Entity.HOLIDAYS: (Entity.HOLIDAYS,),
    Entity.ATTENDANCE: (Entity.ATTENDANCE, Entity.ATTENDANCE_STATS),
    Entity.PAYROLL_RUNS: (Entity.PAYROLL_RUNS, Entity.PAYSLIPS),
    Entity.PAYSLIPS: (Entity.PAYSLIPS,),
    Entity.SALARY_COMPONENTS: (Entity.SALARY_COMPONENTS,),
    Entity.PERFORMANCE_REVIEWS: (Entity.PERFORMANCE_REVIEWS,),
    Entity.PERFORMANCE_GOALS: (Entity.PERFORMANCE_GOALS,),
    Entity.PERFORMANCE_FEEDBACK: (Entity.PERFORMANCE_FEEDBACK,),
    Entity.NOTIFICATIONS: (Entity.NOTIFICATIONS,),
    Entity.DOCUMENTS: (Entity.DOCUMENTS,),
}

ALL_SCOPE = "all"


class CacheKey(NamedTuple):
    entity: str
    scope: str = ALL_SCOPE


def user_scope(user_id: int, **filters: Any) -> str:
    """Scope string for a person's own view, e.g. ``user:7:year=2024``."""
    parts = [f"user:{user_id}"]
    parts.extend(f"{k}={v}" for k, v in sorted(filters.items()) if v is not None)
    return ":".join(parts)


def list_scope(**filters: Any) -> str:
    """Scope string for an admin-wide view, optionally narrowed by filters."""
    parts = [ALL_SCOPE]
    parts.extend(f"{k}={v}" for k, v in sorted(filters.items()) if v is not None)
    return ":".join(parts)


class QueryCache:
    """In-process cache of read results, owned by the application instance."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._entries: Dict[CacheKey, Any] = {}
        # bumped on every invalidation; a load that straddles one is not stored
        self._generations: Dict[str, int] = {}
        self._lock = threading.RLock()

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            return self._entries.get(key)

    def get_or_load(self, key: CacheKey, loader: Callable[[], Any]) -> Any:
        if not self.enabled:
            return loader()
        with self._lock:
            if key in self._entries:
                return self._entries[key]
            generation = self._generations.get(key.entity, 0)
        # Loader errors propagate and leave the key absent
        value = loader()
        with self._lock:
            if self._generations.get(key.entity, 0) == generation:
                self._entries[key] = value
            else:
                logger.debug(f"Discarded load of {key.entity} invalidated while in flight")
        return value

    def invalidate(self, entity: str) -> Tuple[str, ...]:
        """Drop every cached scope of ``entity`` and its dependent entities."""
        targets = INVALIDATION_EDGES.get(entity, (entity,))
        with self._lock:
            for target in targets:
                self._generations[target] = self._generations.get(target, 0) + 1
            stale = [k for k in self._entries if k.entity in targets]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries for {entity}")
        return targets

    def clear(self):
        with self._lock:
            for entity in {k.entity for k in self._entries} | set(self._generations):
                self._generations[entity] = self._generations.get(entity, 0) + 1
            self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
