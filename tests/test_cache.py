from job_feed.services.cache import ResultCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def test_get_returns_stored_value_until_expiry():
    clock = FakeClock()
    cache = ResultCache(default_ttl=60.0, clock=clock)

    cache.set("workana-jobs", [1, 2, 3])
    assert cache.get("workana-jobs") == [1, 2, 3]
    # Reads are idempotent and do not extend the TTL
    clock.advance(30)
    assert cache.get("workana-jobs") == [1, 2, 3]
    clock.advance(30.5)
    assert cache.get("workana-jobs") is None


def test_expired_entry_is_removed_on_read():
    clock = FakeClock()
    cache = ResultCache(clock=clock)

    cache.set("k", "v", ttl=0.1)
    clock.advance(0.15)

    assert cache.get("k") is None
    assert cache.size() == 0


def test_missing_key():
    cache = ResultCache()
    assert cache.get("nope") is None


def test_delete_and_clear():
    cache = ResultCache()
    cache.set("a", 1)
    cache.set("b", 2)

    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.size() == 1

    cache.clear()
    assert cache.size() == 0


def test_set_overwrites_and_resets_expiry():
    clock = FakeClock()
    cache = ResultCache(default_ttl=10, clock=clock)

    cache.set("k", "old")
    clock.advance(8)
    cache.set("k", "new")
    clock.advance(8)

    assert cache.get("k") == "new"
