from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

env_path = os.path.join(os.path.dirname(__file__), ".env")
load_dotenv(env_path)

DEFAULT_API_BASE = "https://api.sportmonks.com/v3/football"


class ConfigurationError(RuntimeError):
    """Raised when the process cannot start because required settings are missing."""


def _env_int(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError:
        value = default
    return max(minimum, min(maximum, value))


def _env_float(name: str, default: float, minimum: float, maximum: float) -> float:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except ValueError:
        value = default
    return max(minimum, min(maximum, value))


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    values = [item.strip() for item in raw.split(",") if item.strip()]
    return values or [default]


@dataclass(frozen=True)
class Settings:
    api_key: str
    api_base: str = DEFAULT_API_BASE
    host: str = "0.0.0.0"
    port: int = 8080
    upstream_locale: str = "ar"
    display_timezone: str = "Asia/Bahrain"
    request_timeout_seconds: float = 10.0
    max_concurrent_upstream: int = 4
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def load_settings() -> Settings:
    api_key = os.getenv("API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("Missing API_KEY in environment or .env")

    api_base = os.getenv("API_BASE", "").strip() or DEFAULT_API_BASE

    return Settings(
        api_key=api_key,
        api_base=api_base.rstrip("/"),
        host=os.getenv("HOST", "0.0.0.0").strip() or "0.0.0.0",
        port=_env_int("PORT", default=8080, minimum=1, maximum=65535),
        upstream_locale=os.getenv("UPSTREAM_LOCALE", "ar").strip() or "ar",
        display_timezone=os.getenv("DISPLAY_TIMEZONE", "Asia/Bahrain").strip() or "Asia/Bahrain",
        request_timeout_seconds=_env_float(
            "REQUEST_TIMEOUT_SECONDS", default=10.0, minimum=0.5, maximum=120.0
        ),
        max_concurrent_upstream=_env_int(
            "MAX_CONCURRENT_UPSTREAM", default=4, minimum=1, maximum=32
        ),
        cors_origins=tuple(_parse_csv_env("CORS_ORIGINS", "*")),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
