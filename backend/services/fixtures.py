from __future__ import annotations

import datetime as dt
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

DEFAULT_DISPLAY_TIMEZONE = "Asia/Bahrain"

_EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.UTC)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _to_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _opt_id(value: Any) -> int | str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    return None


def _opt_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _parse_kickoff(value: Any) -> dt.datetime | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        parsed = dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


def current_score(scores: Any) -> dict[str, int]:
    """Reduce a Sportmonks score list to the current home/away tally.

    Only records described as ``CURRENT`` count, and a later record for the
    same side overwrites an earlier one.
    """
    home = 0
    away = 0
    for record in _as_list(scores):
        record = _as_dict(record)
        if record.get("description") != "CURRENT":
            continue
        score = _as_dict(record.get("score"))
        participant = score.get("participant")
        if participant == "home":
            home = _to_int(score.get("goals"))
        elif participant == "away":
            away = _to_int(score.get("goals"))
    return {"home": home, "away": away}


def _find_participant(participants: Any, location: str) -> dict[str, Any]:
    for participant in _as_list(participants):
        participant = _as_dict(participant)
        if _as_dict(participant.get("meta")).get("location") == location:
            return participant
    return {}


def _team(participant: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": _opt_id(participant.get("id")),
        "name": _opt_text(participant.get("name")),
        "code": _opt_text(participant.get("short_code")),
        "logo": _opt_text(participant.get("image_path")),
    }


def _kickoff_utc(starting_at: Any) -> str | None:
    if not isinstance(starting_at, str) or not starting_at.strip():
        return None
    return starting_at.strip().replace(" ", "T") + "Z"


def format_local_kickoff(kickoff_utc: str | None, timezone: str) -> str | None:
    if not kickoff_utc:
        return None
    try:
        parsed = _parse_kickoff(kickoff_utc)
        if parsed is None:
            return None
        return parsed.astimezone(ZoneInfo(timezone)).strftime("%H:%M")
    except Exception as exc:
        logger.debug("Could not render kickoff {} in {}: {}", kickoff_utc, timezone, exc)
        return None


def map_fixture(
    raw: Any, display_timezone: str = DEFAULT_DISPLAY_TIMEZONE
) -> dict[str, Any]:
    fixture = _as_dict(raw)
    participants = fixture.get("participants")
    score = current_score(fixture.get("scores"))
    kickoff_utc = _kickoff_utc(fixture.get("starting_at"))

    return {
        "id": _opt_id(fixture.get("id")),
        "league_id": _opt_id(fixture.get("league_id")),
        "league_name": _opt_text(_as_dict(fixture.get("league")).get("name")),
        "state_id": _opt_id(fixture.get("state_id")),
        "kickoff_utc": kickoff_utc,
        "kickoff_local": format_local_kickoff(kickoff_utc, display_timezone),
        "home": _team(_find_participant(participants, "home")),
        "away": _team(_find_participant(participants, "away")),
        "score_home": score["home"],
        "score_away": score["away"],
    }


def map_fixtures(
    rows: Any, display_timezone: str = DEFAULT_DISPLAY_TIMEZONE
) -> list[dict[str, Any]]:
    return [map_fixture(row, display_timezone) for row in _as_list(rows)]


def _kickoff_sort_key(fixture: dict[str, Any]) -> dt.datetime:
    return _parse_kickoff(_as_dict(fixture).get("kickoff_utc")) or _EPOCH


def sort_by_kickoff(fixtures: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # Missing or unreadable kickoffs count as the epoch and sort first.
    return sorted(fixtures, key=_kickoff_sort_key)
