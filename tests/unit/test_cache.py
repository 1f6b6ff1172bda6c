"""Unit tests for TTL caches."""

from boost_scanner.core.cache import CandidateCache, TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestTTLCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.cache = TTLCache(120, clock=self.clock)

    def test_miss(self):
        assert self.cache.get("missing") is None

    def test_hit_within_ttl(self):
        self.cache.set("k", [1, 2])
        self.clock.advance(119.9)
        assert self.cache.get("k") == [1, 2]

    def test_expires_at_ttl(self):
        self.cache.set("k", "v")
        self.clock.advance(120)
        assert self.cache.get("k") is None
        assert "k" not in self.cache

    def test_per_entry_ttl(self):
        self.cache.set("k", "v", ttl=5)
        self.clock.advance(6)
        assert self.cache.get("k") is None

    def test_falsy_values_are_hits(self):
        self.cache.set("empty", ())
        assert self.cache.get("empty") == ()

    def test_invalidate_and_clear(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.invalidate("a")
        assert self.cache.get("a") is None
        self.cache.clear()
        assert self.cache.get("b") is None


class TestCandidateCache:
    def test_independent_stores(self):
        clock = FakeClock()
        cache = CandidateCache(short_ttl=120, long_ttl=1800, clock=clock)
        cache.short.set("explosion-candidates", ("A",))
        cache.long.set("new-listings", ("B",))

        clock.advance(600)

        assert cache.short.get("explosion-candidates") is None
        assert cache.long.get("new-listings") == ("B",)
        assert cache.short.ttl == 120
        assert cache.long.ttl == 1800
