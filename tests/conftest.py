"""Pytest configuration for test isolation.

Settings are read from the process environment, and a developer's shell or
``.env`` may already define ``DATABASE_URL`` and friends. An autouse fixture
clears every variable the app reads so each test starts from defaults, and
engines cached per database URL are disposed after each test so file-backed
SQLite databases in ``tmp_path`` are released and the package logger handed
back to the root logger.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from notify_ledger.config import Settings
from notify_ledger.db.client import dispose_engines
from notify_ledger.logging_setup import reset_logging

_APP_ENV_VARS = (
    "DATABASE_URL",
    "LEDGER_TZ",
    "LEDGER_TABLE",
    "HEADER",
    "FUBON_QUERY_SUBJECT",
    "CATHAY_LABEL",
    "CATHAY_SUBJECT",
    "CATHAY_TRANSFER_FROM",
    "CATHAY_TRANSFER_SUBJECT",
    "WINDOW_DAYS",
    "LOOSE_DEDUP_SOURCES",
    "LOCK_PATH",
    "LOCK_TIMEOUT_SECONDS",
    "GMAIL_USER",
    "GMAIL_APP_PASSWORD",
    "IMAP_HOST",
    "NOTIFY_LEDGER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch):
    for name in _APP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()
    reset_logging()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of a file-backed SQLite database unique to the test."""

    return f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def settings(db_url: str, tmp_path: Path) -> Settings:
    return Settings(database_url=db_url, lock_path=str(tmp_path / "ingest.lock"))
