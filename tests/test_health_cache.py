"""Tests for agents.health_cache."""

from agents.health_cache import DEFAULT_HEALTH_CACHE_TTL, HealthCache


class TestHealthCache:
    """Test TTL memoization of availability probes."""

    def test_empty_cache_is_invalid(self, clock):
        cache = HealthCache(30, clock=clock)
        assert cache.get() == (False, False)
        assert cache.is_valid() is False

    def test_value_valid_within_ttl(self, clock):
        cache = HealthCache(30, clock=clock)
        cache.set(True)
        clock.advance(29.9)
        assert cache.get() == (True, True)

    def test_value_expires(self, clock):
        cache = HealthCache(30, clock=clock)
        cache.set(True)
        clock.advance(30)
        available, valid = cache.get()
        assert valid is False

    def test_unavailable_is_cached_too(self, clock):
        cache = HealthCache(30, clock=clock)
        cache.set(False)
        assert cache.get() == (False, True)

    def test_invalidate(self, clock):
        cache = HealthCache(30, clock=clock)
        cache.set(True)
        cache.invalidate()
        assert cache.is_valid() is False

    def test_zero_ttl_never_valid(self, clock):
        cache = HealthCache(0, clock=clock)
        cache.set(True)
        assert cache.is_valid() is False

    def test_default_ttl(self):
        assert HealthCache().ttl == DEFAULT_HEALTH_CACHE_TTL == 30.0
