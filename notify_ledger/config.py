"""Runtime settings read from the environment.

The CLI loads a local ``.env`` (``python-dotenv``) before calling
:func:`load_settings`. Only ``DATABASE_URL`` is mandatory; a malformed
``HEADER`` override silently falls back to :data:`DEFAULT_HEADER`.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import DEFAULT_HEADER

DEFAULT_TZ = "Asia/Taipei"
DEFAULT_FUBON_QUERY_SUBJECT = (
    '(subject:"即時消費通知" OR subject:"富邦信用卡消費通知" OR subject:"富邦信用卡即時消費通知")'
)
DEFAULT_CATHAY_LABEL = "國泰世華消費"
DEFAULT_CATHAY_SUBJECT = "消費彙整通知"
DEFAULT_CATHAY_TRANSFER_FROM = "cathaybk"
DEFAULT_CATHAY_TRANSFER_SUBJECT = "CUBE App轉帳通知"


class ConfigError(RuntimeError):
    """Fatal configuration problem detected at startup."""


def parse_header(raw: str | None) -> tuple[str, ...]:
    """Parse a JSON list of column labels; fall back to the default set."""

    if raw:
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            parsed = None
        if isinstance(parsed, list) and parsed:
            return tuple(str(v) for v in parsed)
    return DEFAULT_HEADER


def _split_csv(raw: str | None) -> frozenset[str]:
    return frozenset(p.strip() for p in (raw or "").split(",") if p.strip())


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    tz: str = DEFAULT_TZ
    database_url: str
    ledger_table: str = "transactions"
    header: tuple[str, ...] = DEFAULT_HEADER

    fubon_query_subject: str = DEFAULT_FUBON_QUERY_SUBJECT
    cathay_label: str = DEFAULT_CATHAY_LABEL
    cathay_subject: str = DEFAULT_CATHAY_SUBJECT
    cathay_transfer_from: str = DEFAULT_CATHAY_TRANSFER_FROM
    cathay_transfer_subject: str = DEFAULT_CATHAY_TRANSFER_SUBJECT

    window_days: int = Field(default=15, gt=0)
    # Sources whose candidates are also checked against the loose key.
    loose_dedup_sources: frozenset[str] = frozenset({"cathay_transfer"})

    lock_path: str = ".notify_ledger.lock"
    lock_timeout_seconds: float = Field(default=20.0, ge=0)

    gmail_user: str | None = None
    gmail_app_password: str | None = None
    imap_host: str = "imap.gmail.com"

    @field_validator("database_url")
    @classmethod
    def _database_url_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("DATABASE_URL must be non-empty")
        return v


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``).

    Raises :class:`ConfigError` when ``DATABASE_URL`` is missing or any value
    fails validation.
    """

    env = os.environ if environ is None else environ

    database_url = (env.get("DATABASE_URL") or "").strip()
    if not database_url:
        raise ConfigError("Missing required config: DATABASE_URL")

    values: dict[str, object] = {
        "database_url": database_url,
        "header": parse_header(env.get("HEADER")),
    }
    if env.get("LEDGER_TZ"):
        values["tz"] = env["LEDGER_TZ"]
    for key in (
        "LEDGER_TABLE",
        "FUBON_QUERY_SUBJECT",
        "CATHAY_LABEL",
        "CATHAY_SUBJECT",
        "CATHAY_TRANSFER_FROM",
        "CATHAY_TRANSFER_SUBJECT",
        "WINDOW_DAYS",
        "LOCK_PATH",
        "LOCK_TIMEOUT_SECONDS",
        "GMAIL_USER",
        "GMAIL_APP_PASSWORD",
        "IMAP_HOST",
    ):
        val = env.get(key)
        if val:
            values[key.lower()] = val
    if env.get("LOOSE_DEDUP_SOURCES") is not None:
        values["loose_dedup_sources"] = _split_csv(env.get("LOOSE_DEDUP_SOURCES"))

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


__all__ = ["ConfigError", "Settings", "load_settings", "parse_header"]
