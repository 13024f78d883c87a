import pytest

from ems.core.cache import CacheKey, Entity, QueryCache, list_scope, user_scope


def test_scopes():
    assert user_scope(7) == "user:7"
    assert user_scope(7, year=2024, unread=None) == "user:7:year=2024"
    assert list_scope() == "all"
    assert list_scope(status="pending") == "all:status=pending"


def test_get_or_load_caches_until_invalidated():
    cache = QueryCache()
    calls = []

    def loader():
        calls.append(1)
        return ["row"]

    key = CacheKey(Entity.LEAVE_BALANCES, user_scope(3))
    assert cache.get_or_load(key, loader) == ["row"]
    assert cache.get_or_load(key, loader) == ["row"]
    assert len(calls) == 1

    cache.invalidate(Entity.LEAVE_BALANCES)
    cache.get_or_load(key, loader)
    assert len(calls) == 2


def test_invalidation_follows_edges():
    cache = QueryCache()
    cache.get_or_load(CacheKey(Entity.ATTENDANCE), list)
    cache.get_or_load(CacheKey(Entity.ATTENDANCE_STATS, list_scope(date="2024-03-06")), dict)
    cache.get_or_load(CacheKey(Entity.PAYSLIPS), list)

    assert cache.invalidate(Entity.ATTENDANCE) == (Entity.ATTENDANCE, Entity.ATTENDANCE_STATS)
    assert len(cache) == 1
    assert CacheKey(Entity.PAYSLIPS) in cache

    cache.invalidate(Entity.PAYROLL_RUNS)
    assert len(cache) == 0


def test_loader_error_leaves_key_absent():
    cache = QueryCache()

    def failing():
        raise RuntimeError("db down")

    with pytest.raises(RuntimeError):
        cache.get_or_load(CacheKey(Entity.HOLIDAYS), failing)
    assert CacheKey(Entity.HOLIDAYS) not in cache


def test_disabled_cache_always_loads():
    cache = QueryCache(enabled=False)
    calls = []
    cache.get_or_load(CacheKey(Entity.HOLIDAYS), lambda: calls.append(1))
    cache.get_or_load(CacheKey(Entity.HOLIDAYS), lambda: calls.append(1))
    assert len(calls) == 2
    assert len(cache) == 0


def test_load_invalidated_mid_flight_is_not_stored():
    cache = QueryCache()
    key = CacheKey(Entity.LEAVE_BALANCES, user_scope(3))

    def loader():
        # A concurrent commit lands while this read is running
        cache.invalidate(Entity.LEAVE_REQUESTS)
        cache.invalidate(Entity.LEAVE_BALANCES)
        return ["stale"]

    assert cache.get_or_load(key, loader) == ["stale"]
    assert key not in cache
    assert cache.get_or_load(key, lambda: ["fresh"]) == ["fresh"]
    assert cache.get(key) == ["fresh"]


def test_invalidating_other_entity_does_not_discard_load():
    cache = QueryCache()
    key = CacheKey(Entity.HOLIDAYS)

    def loader():
        cache.invalidate(Entity.DOCUMENTS)
        return ["new year"]

    cache.get_or_load(key, loader)
    assert cache.get(key) == ["new year"]
