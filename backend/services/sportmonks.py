from __future__ import annotations

import threading
from typing import Any
from urllib.parse import urlencode

import requests
from loguru import logger

from backend.config import Settings

LISTING_INCLUDES = "participants;league;scores"
MATCH_INCLUDES = "participants;league;events;scores"


class UpstreamError(RuntimeError):
    """The upstream provider could not be reached or returned an unusable payload."""


def _redact(url: str) -> str:
    return url.split("?", 1)[0]


class SportmonksClient:
    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.base_url = settings.api_base.rstrip("/")
        self.api_key = settings.api_key
        self.locale = settings.upstream_locale
        self.timeout_seconds = settings.request_timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._slots = threading.BoundedSemaphore(settings.max_concurrent_upstream)

    def _build_url(self, path: str, include: str) -> str:
        query = urlencode(
            {"api_token": self.api_key, "include": include, "locale": self.locale},
            safe=";",
        )
        return f"{self.base_url}/{path.lstrip('/')}?{query}"

    def fixtures_by_date_url(self, date: str) -> str:
        return self._build_url(f"fixtures/date/{date}", LISTING_INCLUDES)

    def inplay_url(self) -> str:
        return self._build_url("livescores/inplay", LISTING_INCLUDES)

    def fixture_url(self, fixture_id: int | str) -> str:
        return self._build_url(f"fixtures/{fixture_id}", MATCH_INCLUDES)

    def fetch(self, url: str) -> dict[str, Any]:
        path = _redact(url)
        with self._slots:
            logger.debug("Upstream GET {}", path)
            try:
                response = self.session.get(url, timeout=self.timeout_seconds)
                response.raise_for_status()
                payload = response.json()
            except (requests.exceptions.RequestException, ValueError) as exc:
                # HTTPError messages embed the full URL, token included.
                detail = exc.__class__.__name__
                status = getattr(getattr(exc, "response", None), "status_code", None)
                if status is not None:
                    detail = f"{detail} (status {status})"
                logger.warning("Upstream request failed for {}: {}", path, detail)
                raise UpstreamError(f"Upstream request failed for {path}: {detail}") from exc

        if not isinstance(payload, dict):
            logger.warning("Upstream payload for {} is not a JSON object", path)
            raise UpstreamError(f"Malformed upstream payload for {path}")
        return payload

    def _fetch_rows(self, url: str) -> list[Any]:
        payload = self.fetch(url)
        rows = payload.get("data")
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise UpstreamError(f"Malformed fixtures listing for {_redact(url)}")
        return rows

    def fixtures_for_date(self, date: str) -> list[Any]:
        return self._fetch_rows(self.fixtures_by_date_url(date))

    def inplay_fixtures(self) -> list[Any]:
        return self._fetch_rows(self.inplay_url())

    def fixture(self, fixture_id: int | str) -> dict[str, Any]:
        return self.fetch(self.fixture_url(fixture_id))
