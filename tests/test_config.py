import pytest

from notify_ledger.config import (
    DEFAULT_TZ,
    ConfigError,
    Settings,
    load_settings,
    parse_header,
)
from notify_ledger.models import DEFAULT_HEADER


def test_missing_database_url_is_fatal():
    with pytest.raises(ConfigError, match="DATABASE_URL"):
        load_settings({})
    with pytest.raises(ConfigError):
        load_settings({"DATABASE_URL": "   "})


def test_defaults():
    s = load_settings({"DATABASE_URL": "sqlite://"})
    assert s.tz == DEFAULT_TZ
    assert s.header == DEFAULT_HEADER
    assert s.window_days == 15
    assert s.loose_dedup_sources == frozenset({"cathay_transfer"})
    assert s.cathay_label == "國泰世華消費"
    assert s.gmail_user is None


def test_reads_from_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///ledger.db")
    monkeypatch.setenv("LEDGER_TZ", "UTC")
    monkeypatch.setenv("WINDOW_DAYS", "3")
    s = load_settings()
    assert s.database_url == "sqlite:///ledger.db"
    assert s.tz == "UTC"
    assert s.window_days == 3


def test_header_override_and_fallback():
    s = load_settings({"DATABASE_URL": "sqlite://", "HEADER": '["a", "b", "c"]'})
    assert s.header == ("a", "b", "c")

    for bad in ("not json", "{}", "[]", '"a,b"'):
        assert load_settings({"DATABASE_URL": "sqlite://", "HEADER": bad}).header == DEFAULT_HEADER


def test_parse_header_coerces_labels_to_text():
    assert parse_header("[1, \"x\"]") == ("1", "x")
    assert parse_header(None) == DEFAULT_HEADER


def test_loose_dedup_sources_list():
    env = {"DATABASE_URL": "sqlite://", "LOOSE_DEDUP_SOURCES": " fubon , cathay_transfer ,"}
    assert load_settings(env).loose_dedup_sources == frozenset({"fubon", "cathay_transfer"})

    # An explicitly empty list turns loose dedup off everywhere.
    env["LOOSE_DEDUP_SOURCES"] = ""
    assert load_settings(env).loose_dedup_sources == frozenset()


def test_invalid_values_raise_config_error():
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_settings({"DATABASE_URL": "sqlite://", "WINDOW_DAYS": "0"})
    with pytest.raises(ConfigError):
        load_settings({"DATABASE_URL": "sqlite://", "WINDOW_DAYS": "two weeks"})


def test_settings_are_frozen():
    s = Settings(database_url="sqlite://")
    with pytest.raises(Exception):
        s.tz = "UTC"  # type: ignore[misc]
