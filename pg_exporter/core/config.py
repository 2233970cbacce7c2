from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _parse_port(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _require(name: str, value: str | None) -> str:
    # Presence only; the database is the judge of whether the value is valid.
    if value is None or not value.strip():
        raise ValueError(f"{name} is required")
    return value


@dataclass(frozen=True)
class Settings:
    db_host: str
    db_name: str
    db_user: str
    db_password: str = field(repr=False)
    db_port: int = 5432
    app_env: AppEnv = "dev"
    log_level: LogLevel = "info"
    log_json: bool = False
    listen_host: str = "127.0.0.1"
    port: int = 8080

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def db_target(self) -> str:
        """Connection target without credentials, safe to log."""
        return f"{self.db_host}:{self.db_port}/{self.db_name}"


def load_settings(
    host: str | None,
    database: str | None,
    user: str | None,
    password: str | None,
    *,
    db_port: int | None = None,
    listen_host: str | None = None,
    port: int | None = None,
) -> Settings:
    """Build the immutable process configuration.

    The four connection strings come from the command line.  Everything
    else is read from the environment unless an explicit keyword
    override is given.
    """
    db_host = _require("host", host)
    db_name = _require("database", database)
    db_user = _require("user", user)
    db_password = _require("password", password)

    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if db_port is None:
        db_port = _parse_port("PGPORT", _getenv("PGPORT", "5432"))
    if port is None:
        port = _parse_port("PORT", _getenv("PORT", "8080"))
    if listen_host is None:
        listen_host = _getenv("LISTEN_HOST", "127.0.0.1")

    return Settings(  # type: ignore[arg-type]
        db_host=db_host,
        db_name=db_name,
        db_user=db_user,
        db_password=db_password,
        db_port=db_port,
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in _TRUTHY,
        listen_host=listen_host,
        port=port,
    )
