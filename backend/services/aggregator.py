from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from typing import Any

from loguru import logger

from backend.services.fixtures import DEFAULT_DISPLAY_TIMEZONE, map_fixtures, sort_by_kickoff
from backend.services.sportmonks import SportmonksClient
from backend.services.ttl_cache import TTLCache

DEFAULT_UPCOMING_DAYS = 7
MAX_UPCOMING_DAYS = 14

DAY_TTL_MS = 60_000
LIVE_TTL_MS = 5_000
MATCH_TTL_MS = 3_000

LIVE_CACHE_KEY = "live:simple"


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def clamp_days(days: int | None) -> int:
    if days is None:
        return DEFAULT_UPCOMING_DAYS
    return max(1, min(MAX_UPCOMING_DAYS, int(days)))


def day_cache_key(day: dt.date) -> str:
    return f"fixtures:day:{day.isoformat()}"


def upcoming_cache_key(days: int) -> str:
    return f"fixtures:upcoming:{days}"


def match_cache_key(match_id: int | str) -> str:
    return f"match:{match_id}"


class DayAggregator:
    """Builds the cached fixture views on top of the upstream client.

    Every view is read through the cache first. Upstream failures propagate
    as ``UpstreamError`` and leave the cache untouched for the failed key, so
    the next request retries. Multi-day views are fail-fast: one failed day
    aborts the whole schedule instead of reporting it as empty.
    """

    def __init__(
        self,
        client: SportmonksClient,
        cache: TTLCache,
        display_timezone: str = DEFAULT_DISPLAY_TIMEZONE,
        now: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.display_timezone = display_timezone
        self._now = now or _utc_now

    def today(self) -> dt.date:
        return self._now().astimezone(dt.UTC).date()

    def _cached(self, key: str) -> Any | None:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for {}", key)
        else:
            logger.debug("Cache miss for {}", key)
        return cached

    def _normalized(self, rows: list[Any]) -> list[dict[str, Any]]:
        return sort_by_kickoff(map_fixtures(rows, self.display_timezone))

    def daily(self, day: dt.date, cache_key: str, ttl_ms: int = DAY_TTL_MS) -> dict[str, Any]:
        cached = self._cached(cache_key)
        if cached is not None:
            return cached

        date_utc = day.isoformat()
        fixtures = self._normalized(self.client.fixtures_for_date(date_utc))
        response = {"date_utc": date_utc, "fixtures": fixtures}
        self.cache.put(cache_key, response, ttl_ms)
        return response

    def upcoming(self, days: int | None = None, ttl_ms: int = DAY_TTL_MS) -> dict[str, Any]:
        count = clamp_days(days)
        key = upcoming_cache_key(count)
        cached = self._cached(key)
        if cached is not None:
            return cached

        start = self.today()
        schedule: list[dict[str, Any]] = []
        # Days are fetched one at a time, in chronological order.
        for offset in range(count):
            day = start + dt.timedelta(days=offset)
            daily = self.daily(day, day_cache_key(day), ttl_ms)
            if daily["fixtures"]:
                schedule.append(daily)

        response = {"days": count, "schedule": schedule}
        self.cache.put(key, response, ttl_ms)
        logger.info(
            "Assembled {}-day schedule from {} with {} non-empty day(s)",
            count,
            start.isoformat(),
            len(schedule),
        )
        return response

    def live(self, ttl_ms: int = LIVE_TTL_MS) -> dict[str, Any]:
        cached = self._cached(LIVE_CACHE_KEY)
        if cached is not None:
            return cached

        fixtures = self._normalized(self.client.inplay_fixtures())
        response = {"count": len(fixtures), "fixtures": fixtures}
        self.cache.put(LIVE_CACHE_KEY, response, ttl_ms)
        return response

    def match(self, match_id: int | str, ttl_ms: int = MATCH_TTL_MS) -> dict[str, Any]:
        key = match_cache_key(match_id)
        cached = self._cached(key)
        if cached is not None:
            return cached

        # Served as the raw upstream payload; not passed through map_fixture.
        payload = self.client.fixture(match_id)
        self.cache.put(key, payload, ttl_ms)
        return payload
