from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from notify_ledger.datetimes import (
    IngestWindow,
    coerce_instant,
    format_instant,
    normalize_date,
    normalize_time,
    resolve_offset,
    to_instant,
    window_for,
)

TPE = timezone(timedelta(hours=8))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("101年3月5日", "2012/03/05"),
        ("授權日期：113 年 12 月 1 日", "2024/12/01"),
        ("2024/3/5", "2024/03/05"),
        ("2024-03-05", "2024/03/05"),
        ("消費日期：2024/12/31", "2024/12/31"),
        ("no date here", ""),
        ("", ""),
    ],
)
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9:05", "9:05:00"),
        ("09:05:22", "09:05:22"),
        ("授權時間：13:2", "13:2:00"),
        ("noon", ""),
        (None, ""),
    ],
)
def test_normalize_time(raw, expected):
    assert normalize_time(raw) == expected


def test_resolve_offset_known_and_fallback():
    assert resolve_offset("Asia/Taipei").utcoffset(None) == timedelta(hours=8)
    assert resolve_offset("Europe/Paris").utcoffset(None) == timedelta(0)


def test_to_instant_uses_configured_offset():
    dt = to_instant("2024/03/05", "13:22:00", "Asia/Taipei")
    assert dt == datetime(2024, 3, 5, 5, 22, tzinfo=UTC)
    assert to_instant("2024/03/05", "", "UTC") == datetime(2024, 3, 5, tzinfo=UTC)


def test_to_instant_accepts_unpadded_time():
    assert to_instant("2024/03/05", "9:05:00", "Asia/Taipei").hour == 9


def test_to_instant_rejects_non_canonical_date():
    with pytest.raises(ValueError):
        to_instant("", "10:00:00", "Asia/Taipei")


@pytest.mark.parametrize(("ymd", "hms"), [("2024/02/30", "10:00:00"), ("2024/03/05", "25:61:00")])
def test_to_instant_rejects_impossible_calendar_values(ymd, hms):
    # Both pass the textual patterns; only the calendar check catches them.
    assert normalize_date(ymd) == ymd
    with pytest.raises(ValueError):
        to_instant(ymd, hms, "Asia/Taipei")


def test_format_instant_converts_to_zone():
    dt = datetime(2024, 3, 4, 20, 0, 1, tzinfo=UTC)
    assert format_instant(dt, "Asia/Taipei") == "2024/03/05 04:00:01"


def test_coerce_instant_variants():
    tz = "Asia/Taipei"
    expected = datetime(2024, 3, 5, 13, 22, tzinfo=TPE)
    assert coerce_instant(expected, tz) == expected
    assert coerce_instant(datetime(2024, 3, 5, 13, 22), tz) == expected
    assert coerce_instant("2024/03/05 13:22", tz) == expected
    assert coerce_instant("2024-03-05T05:22:00+00:00", tz) == expected
    assert coerce_instant(date(2024, 3, 5), tz) == datetime(2024, 3, 5, tzinfo=TPE)
    assert coerce_instant("", tz) is None
    assert coerce_instant("garbage", tz) is None
    assert coerce_instant(None, tz) is None


def test_window_is_inclusive_at_both_ends():
    window = IngestWindow(start=date(2024, 3, 1), end=date(2024, 3, 15))
    assert window.contains("2024/03/01")
    assert window.contains("2024/03/15")
    assert not window.contains("2024/02/29")
    assert not window.contains("2024/03/16")
    assert not window.contains("")
    assert window.before_ymd == "2024/03/16"


def test_window_for_counts_days_in_local_zone():
    # 17:00 UTC on Mar 14 is already Mar 15 in Taipei.
    now = datetime(2024, 3, 14, 17, 0, tzinfo=UTC)
    window = window_for(15, "Asia/Taipei", now=now)
    assert (window.start_ymd, window.end_ymd) == ("2024/03/01", "2024/03/15")


def test_window_for_rejects_non_positive_days():
    with pytest.raises(ValueError):
        window_for(0, "Asia/Taipei")
