from portfolio_lens.cache.ttl_cache import TTLCache


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_entries_expire_with_injected_clock() -> None:
    clock = _Clock()
    cache = TTLCache(default_ttl_seconds=60, clock=clock)
    cache.set("nesn", "NESN.SW")
    assert cache.get(" NESN ") == "NESN.SW"

    clock.now += 59
    assert cache.get("NESN") == "NESN.SW"
    clock.now += 1
    assert cache.get("NESN") is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default() -> None:
    clock = _Clock()
    cache = TTLCache(default_ttl_seconds=60, clock=clock)
    cache.set("quote:AAPL", 1.0, ttl_seconds=5)
    cache.set("search:AAPL", 2.0)
    clock.now += 10
    assert cache.get("quote:AAPL") is None
    assert cache.get("search:AAPL") == 2.0


def test_entry_can_hold_none_as_cached_miss() -> None:
    cache = TTLCache()
    cache.set("VWRL", None)
    entry = cache.get_entry("vwrl")
    assert entry is not None
    assert entry.data is None
    cache.clear()
    assert cache.get_entry("VWRL") is None
