from __future__ import annotations

from dataclasses import dataclass, field
import os


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Centralized runtime configuration for backend services."""

    database_url: str
    flask_env: str = "production"
    default_time_control: str = "rapid"
    ai_reply_delay_seconds: float = 0.5
    session_retention_seconds: float = 900.0
    additional: dict[str, str] = field(default_factory=dict)


def load_config(prefix: str = "") -> AppConfig:
    """Load application configuration from environment variables."""

    def _get_env(key: str, default: str = "") -> str:
        env_key = f"{prefix}{key}"
        return os.getenv(env_key, default)

    def _parse_float(raw: str, fallback: float) -> float:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return fallback
        return value if value >= 0 else fallback

    database_url = _get_env("DATABASE_URL", "sqlite+pysqlite:///chessacademy.db")
    reply_delay = _parse_float(_get_env("AI_REPLY_DELAY_SECONDS", "0.5"), 0.5)
    retention = _parse_float(_get_env("SESSION_RETENTION_SECONDS", "900"), 900.0)

    additional_keys = (
        "STRUCTLOG_LEVEL",
        "LESSONS_SEED_PATH",
    )
    additional: dict[str, str] = {}
    for key in additional_keys:
        value = _get_env(key, "")
        if value:
            additional[key] = value

    return AppConfig(
        database_url=database_url,
        flask_env=_get_env("FLASK_ENV", "production"),
        default_time_control=_get_env("DEFAULT_TIME_CONTROL", "rapid").lower(),
        ai_reply_delay_seconds=reply_delay,
        session_retention_seconds=retention,
        additional=additional,
    )


__all__ = ["AppConfig", "load_config"]
