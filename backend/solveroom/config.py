from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    env: str
    port: int
    cors_origins: list[str]
    debug: bool
    log_level: str
    enable_prometheus_metrics: bool
    prediction_timeout_seconds: float
    prediction_max_history: int
    rollback_max_age_seconds: float
    max_collaborators: int
    allow_spectators: bool
    require_premium_to_host: bool
    room_max_inactive_minutes: int
    room_max_age_days: int

    @property
    def is_production(self) -> bool:
        return self.env.lower() not in {"development", "dev", "test", "testing"}

    def validate(self) -> None:
        """Raise early on settings the engines cannot work with."""
        if self.prediction_timeout_seconds <= 0:
            raise RuntimeError("PREDICTION_TIMEOUT_SECONDS must be positive")
        if self.prediction_max_history < 1:
            raise RuntimeError("PREDICTION_MAX_HISTORY must be at least 1")
        if self.max_collaborators < 1:
            raise RuntimeError("MAX_COLLABORATORS must be at least 1")
        if self.is_production and "*" in self.cors_origins:
            raise RuntimeError("CORS_ORIGINS must not contain '*' in production")


settings = Settings(
    env=os.getenv("ENV", "development"),
    port=_as_int(os.getenv("PORT"), 8000),
    cors_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ],
    debug=_as_bool(os.getenv("DEBUG"), False),
    log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    enable_prometheus_metrics=_as_bool(os.getenv("ENABLE_PROMETHEUS_METRICS"), True),
    prediction_timeout_seconds=max(0.05, _as_float(os.getenv("PREDICTION_TIMEOUT_SECONDS"), 5.0)),
    prediction_max_history=max(1, _as_int(os.getenv("PREDICTION_MAX_HISTORY"), 50)),
    rollback_max_age_seconds=max(0.0, _as_float(os.getenv("ROLLBACK_MAX_AGE_SECONDS"), 10.0)),
    max_collaborators=max(1, _as_int(os.getenv("MAX_COLLABORATORS"), 5)),
    allow_spectators=_as_bool(os.getenv("ALLOW_SPECTATORS"), True),
    require_premium_to_host=_as_bool(os.getenv("REQUIRE_PREMIUM_TO_HOST"), True),
    room_max_inactive_minutes=max(1, _as_int(os.getenv("ROOM_MAX_INACTIVE_MINUTES"), 30)),
    room_max_age_days=max(1, _as_int(os.getenv("ROOM_MAX_AGE_DAYS"), 7)),
)

settings.validate()
