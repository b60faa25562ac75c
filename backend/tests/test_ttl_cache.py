from __future__ import annotations

import threading

from backend.services.ttl_cache import TTLCache


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_put_then_get_returns_value_until_ttl_elapses() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)

    cache.put("fixtures:today:simple", {"date_utc": "2025-08-27", "fixtures": []}, 60_000)
    assert cache.get("fixtures:today:simple") == {"date_utc": "2025-08-27", "fixtures": []}

    clock.advance(59.9)
    assert cache.get("fixtures:today:simple") is not None

    clock.advance(0.1)
    assert cache.get("fixtures:today:simple") is None


def test_missing_key_is_absent() -> None:
    cache = TTLCache(clock=FakeClock())
    assert cache.get("live:simple") is None


def test_put_replaces_entry_and_resets_expiry() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)

    cache.put("match:1", {"v": 1}, 3_000)
    clock.advance(2)
    cache.put("match:1", {"v": 2}, 3_000)
    clock.advance(2)

    assert cache.get("match:1") == {"v": 2}
    assert len(cache) == 1


def test_stale_entry_is_reclaimed_on_read() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)

    cache.put("live:simple", {"count": 0, "fixtures": []}, 5_000)
    clock.advance(6)

    assert len(cache) == 1
    assert cache.get("live:simple") is None
    assert len(cache) == 0


def test_clear_drops_every_entry() -> None:
    cache = TTLCache(clock=FakeClock())
    cache.put("a", 1, 1_000)
    cache.put("b", 2, 1_000)

    cache.clear()

    assert len(cache) == 0
    assert cache.get("a") is None


def test_concurrent_puts_leave_one_complete_value() -> None:
    cache = TTLCache()
    first = {"writer": "first", "fixtures": list(range(50))}
    second = {"writer": "second", "fixtures": list(range(50, 100))}
    barrier = threading.Barrier(8)

    def writer(value: dict) -> None:
        barrier.wait()
        for _ in range(200):
            cache.put("fixtures:date:2025-08-27", value, 60_000)

    threads = [
        threading.Thread(target=writer, args=(first if index % 2 else second,))
        for index in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stored = cache.get("fixtures:date:2025-08-27")
    assert stored in (first, second)
    assert len(cache) == 1


def test_mutating_values_never_reaches_the_cache() -> None:
    cache = TTLCache(clock=FakeClock())
    stored = {"date_utc": "2025-08-27", "fixtures": [{"id": 1}]}

    cache.put("fixtures:day:2025-08-27", stored, 60_000)
    stored["fixtures"].clear()
    read = cache.get("fixtures:day:2025-08-27")
    read["fixtures"].append({"id": 2})

    assert cache.get("fixtures:day:2025-08-27") == {"date_utc": "2025-08-27", "fixtures": [{"id": 1}]}
