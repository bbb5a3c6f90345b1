"""Date/time canonicalization for notification text.

Dates arrive either in the ROC era calendar (3-digit year, e.g. ``113年3月5日``)
or as Gregorian ``yyyy/m/d`` / ``yyyy-m-d``. Both are normalized to the fixed
width ``yyyy/mm/dd`` form, which sorts identically to chronological order and
is what the ingest window compares against.

Timezones are resolved through a single fixed-offset table rather than the
tz database: the deployment targets Taiwan only, which has no DST.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo

ROC_EPOCH_OFFSET = 1911

_FIXED_OFFSETS: dict[str, tzinfo] = {
    "Asia/Taipei": timezone(timedelta(hours=8)),
}

_ROC_DATE_RE = re.compile(r"(?<!\d)(\d{3})(?!\d)\D+?(\d{1,2})\D+?(\d{1,2})")
_GREGORIAN_DATE_RE = re.compile(r"(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})")
_TIME_RE = re.compile(r"(\d{1,2}:\d{1,2})(:\d{1,2})?")
_CANONICAL_YMD_RE = re.compile(r"^\d{4}/\d{2}/\d{2}$")


def normalize_date(raw: str | None) -> str:
    """Return ``yyyy/mm/dd`` for an ROC or Gregorian date substring, else ``""``."""

    if not raw:
        return ""
    m = _ROC_DATE_RE.search(raw)
    if m:
        year = int(m.group(1)) + ROC_EPOCH_OFFSET
        return f"{year}/{m.group(2).zfill(2)}/{m.group(3).zfill(2)}"
    m = _GREGORIAN_DATE_RE.search(raw)
    if m:
        return f"{m.group(1)}/{m.group(2).zfill(2)}/{m.group(3).zfill(2)}"
    return ""


def normalize_time(raw: str | None) -> str:
    """Return ``H:M:S`` with ``:00`` appended when seconds are missing.

    Hour and minute keep the width they were captured with.
    """

    if not raw:
        return ""
    m = _TIME_RE.search(raw)
    if m is None:
        return ""
    if m.group(2):
        return m.group(0)
    return f"{m.group(1)}:00"


def resolve_offset(tz_id: str) -> tzinfo:
    """Map a configured timezone identifier to a fixed offset (UTC fallback)."""

    return _FIXED_OFFSETS.get(tz_id, timezone.utc)


def to_instant(ymd: str, hms: str, tz_id: str) -> datetime:
    """Combine a canonical date and time into an aware datetime.

    ``hms`` may be empty, in which case midnight is used. Raises ``ValueError``
    when ``ymd`` is not a canonical ``yyyy/mm/dd`` date or the date/time is not
    a real calendar value (``2024/02/30``, ``25:61:00``).
    """

    if not _CANONICAL_YMD_RE.match(ymd or ""):
        raise ValueError(f"not a canonical date: {ymd!r}")
    naive = datetime.strptime(f"{ymd} {hms or '00:00:00'}", "%Y/%m/%d %H:%M:%S")
    return naive.replace(tzinfo=resolve_offset(tz_id))


def format_instant(dt: datetime, tz_id: str) -> str:
    return dt.astimezone(resolve_offset(tz_id)).strftime("%Y/%m/%d %H:%M:%S")


def coerce_instant(value: object, tz_id: str) -> datetime | None:
    """Coerce a stored date value into the instant form used by fresh candidates.

    Naive datetimes and strings without an offset are read as local time in
    ``tz_id``. Returns ``None`` when the value cannot be interpreted.
    """

    tz = resolve_offset(tz_id)
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=tz)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=tz)
    if not isinstance(value, str) or not value.strip():
        return None
    s = value.strip()
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        # Sheet-style ``yyyy/mm/dd HH:MM[:SS]`` (or an ROC date) from a manual edit.
        ymd = normalize_date(s)
        if not ymd:
            return None
        try:
            return to_instant(ymd, normalize_time(s), tz_id)
        except ValueError:
            return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=tz)


@dataclass(frozen=True, slots=True)
class IngestWindow:
    """Inclusive range of calendar days, in ``yyyy/mm/dd`` form."""

    start: date
    end: date

    @property
    def start_ymd(self) -> str:
        return self.start.strftime("%Y/%m/%d")

    @property
    def end_ymd(self) -> str:
        return self.end.strftime("%Y/%m/%d")

    @property
    def before_ymd(self) -> str:
        # Search ``before:`` bounds are exclusive, so push one day past the end.
        return (self.end + timedelta(days=1)).strftime("%Y/%m/%d")

    def contains(self, ymd: str) -> bool:
        # Fixed-width zero-padded dates compare correctly as strings.
        return bool(ymd) and self.start_ymd <= ymd <= self.end_ymd


def window_for(days: int, tz_id: str, *, now: datetime | None = None) -> IngestWindow:
    """Return the window of the last ``days`` calendar days ending today."""

    if days <= 0:
        raise ValueError("window days must be a positive integer")
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    today = current.astimezone(resolve_offset(tz_id)).date()
    return IngestWindow(start=today - timedelta(days=days - 1), end=today)


__all__ = [
    "ROC_EPOCH_OFFSET",
    "IngestWindow",
    "coerce_instant",
    "format_instant",
    "normalize_date",
    "normalize_time",
    "resolve_offset",
    "to_instant",
    "window_for",
]
