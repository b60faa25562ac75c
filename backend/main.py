from __future__ import annotations

import datetime as dt
import re
import sys
import time
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from backend.config import ConfigurationError, Settings, load_settings
from backend.services.aggregator import DayAggregator
from backend.services.sportmonks import SportmonksClient, UpstreamError
from backend.services.ttl_cache import TTLCache

TODAY_CACHE_KEY = "fixtures:today:simple"
TOMORROW_CACHE_KEY = "fixtures:tomorrow:simple"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class TeamResponse(BaseModel):
    id: int | str | None = None
    name: str | None = None
    code: str | None = None
    logo: str | None = None


class FixtureResponse(BaseModel):
    id: int | str | None = None
    league_id: int | str | None = None
    league_name: str | None = None
    state_id: int | str | None = None
    kickoff_utc: str | None = None
    kickoff_local: str | None = None
    home: TeamResponse
    away: TeamResponse
    score_home: int = 0
    score_away: int = 0


class DailyScheduleResponse(BaseModel):
    date_utc: str
    fixtures: list[FixtureResponse] = Field(default_factory=list)


class UpcomingScheduleResponse(BaseModel):
    days: int = Field(ge=1, le=14)
    schedule: list[DailyScheduleResponse] = Field(default_factory=list)


class LiveResponse(BaseModel):
    count: int = Field(ge=0)
    fixtures: list[FixtureResponse] = Field(default_factory=list)


def _parse_date(date: str) -> dt.date:
    if not _DATE_PATTERN.match(date):
        raise HTTPException(status_code=400, detail="date must be in YYYY-MM-DD format")
    try:
        return dt.date.fromisoformat(date)
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail="date must be in YYYY-MM-DD format"
        ) from exc


def create_app(
    settings: Settings,
    client: SportmonksClient | None = None,
    cache: TTLCache | None = None,
    now: Callable[[], dt.datetime] | None = None,
) -> FastAPI:
    cache = cache if cache is not None else TTLCache()
    client = client if client is not None else SportmonksClient(settings)
    aggregator = DayAggregator(
        client, cache, display_timezone=settings.display_timezone, now=now
    )

    app = FastAPI(
        title="Fixtures Gateway",
        version="1.0.0",
        description="Caching gateway that normalizes Sportmonks football fixtures.",
    )

    cors_origins = list(settings.cors_origins)
    allow_credentials = "*" not in cors_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.state.cache = cache
    app.state.aggregator = aggregator

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # noqa: ANN001, ANN202
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "{} {} -> {} ({:.1f} ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.warning("Failing {} because upstream failed: {}", request.url.path, exc)
        return JSONResponse(
            status_code=502, content={"detail": "Upstream provider request failed"}
        )

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/readyz")
    def readyz() -> dict[str, Any]:
        return {
            "status": "ready",
            "api_key_configured": bool(settings.api_key),
            "api_base": settings.api_base,
            "cache_entries": len(cache),
            "max_concurrent_upstream": settings.max_concurrent_upstream,
            "display_timezone": settings.display_timezone,
        }

    @app.get("/api/fixtures/today", response_model=DailyScheduleResponse)
    def fixtures_today() -> dict[str, Any]:
        return aggregator.daily(aggregator.today(), TODAY_CACHE_KEY)

    @app.get("/api/fixtures/tomorrow", response_model=DailyScheduleResponse)
    def fixtures_tomorrow() -> dict[str, Any]:
        tomorrow = aggregator.today() + dt.timedelta(days=1)
        return aggregator.daily(tomorrow, TOMORROW_CACHE_KEY)

    @app.get("/api/fixtures/date/{date}", response_model=DailyScheduleResponse)
    def fixtures_for_date(date: str) -> dict[str, Any]:
        day = _parse_date(date)
        return aggregator.daily(day, f"fixtures:date:{day.isoformat()}")

    @app.get("/api/fixtures/upcoming", response_model=UpcomingScheduleResponse)
    def fixtures_upcoming(
        days: int | None = Query(
            default=None,
            description="Number of UTC days starting today; clamped to 1-14, default 7",
        ),
    ) -> dict[str, Any]:
        return aggregator.upcoming(days)

    @app.get("/api/live", response_model=LiveResponse)
    def live() -> dict[str, Any]:
        return aggregator.live()

    @app.get("/api/matches/{match_id}")
    def match(match_id: int) -> dict[str, Any]:
        return aggregator.match(match_id)

    return app


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


def run() -> None:
    import uvicorn

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error(str(exc))
        sys.exit(1)

    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Server listening on {}:{}", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
