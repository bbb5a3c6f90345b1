"""Strict/loose identity keys and the running index of known transactions.

The store enforces no uniqueness, so re-running the ingest over the same
window must be made idempotent here. Two keys are derived per record:

- strict: ``bank|message_id|yyyy/mm/dd HH:MM:SS|last4|amount``; equal strict
  keys mean the same record from the same message.
- loose: the strict key without ``message_id``; equal loose keys mean the
  same real-world transaction, possibly reported by a different message.

Merchant and category are excluded on purpose: users edit those columns
after insert and the edit must neither create nor break a match.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from .datetimes import coerce_instant, format_instant
from .models import OutputRow, TransactionCandidate


def format_amount(value: Any) -> str:
    """Canonical text of an amount: ``""`` when absent, no exponent or trailing zeros."""

    if value is None or value == "":
        return ""
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).replace(",", "").strip())
    except InvalidOperation:
        return str(value).strip()
    if d == d.to_integral_value():
        return str(d.quantize(Decimal(1)))
    return format(d.normalize(), "f")


def _join(parts: Iterable[str]) -> str:
    return "|".join(parts)


def strict_key(c: TransactionCandidate, tz_id: str) -> str:
    return _join(
        (
            c.bank or "",
            c.message_id or "",
            format_instant(c.auth_at, tz_id),
            str(c.card_last4 or ""),
            format_amount(c.amount),
        )
    )


def loose_key(c: TransactionCandidate, tz_id: str) -> str:
    return _join(
        (
            c.bank or "",
            format_instant(c.auth_at, tz_id),
            str(c.card_last4 or ""),
            format_amount(c.amount),
        )
    )


def _row_instant_text(row: OutputRow, tz_id: str) -> str:
    dt = coerce_instant(row.auth_at, tz_id)
    return format_instant(dt, tz_id) if dt is not None else ""


def strict_key_from_row(row: OutputRow, tz_id: str) -> str:
    """Strict key of a persisted row; comparable with :func:`strict_key`."""

    return _join(
        (
            str(row.bank or ""),
            str(row.message_id or ""),
            _row_instant_text(row, tz_id),
            str(row.card_last4 or ""),
            format_amount(row.amount),
        )
    )


def loose_key_from_row(row: OutputRow, tz_id: str) -> str:
    return _join(
        (
            str(row.bank or ""),
            _row_instant_text(row, tz_id),
            str(row.card_last4 or ""),
            format_amount(row.amount),
        )
    )


@dataclass(slots=True)
class ExistingIndex:
    """Known strict keys, loose keys and message ids for one run.

    Seeded once from the store and only ever grown; :meth:`accept` is the
    single place where the check and the insertion happen together.
    """

    tz_id: str
    strict: set[str] = field(default_factory=set)
    loose: set[str] = field(default_factory=set)
    message_ids: set[str] = field(default_factory=set)

    @classmethod
    def from_rows(cls, rows: Iterable[OutputRow], tz_id: str) -> ExistingIndex:
        index = cls(tz_id=tz_id)
        for row in rows:
            index.strict.add(strict_key_from_row(row, tz_id))
            index.loose.add(loose_key_from_row(row, tz_id))
            index.message_ids.add(str(row.message_id or ""))
        return index

    def has_message(self, message_id: str) -> bool:
        return message_id in self.message_ids

    def would_accept(self, c: TransactionCandidate, *, loose: bool = False) -> bool:
        if strict_key(c, self.tz_id) in self.strict:
            return False
        return not (loose and loose_key(c, self.tz_id) in self.loose)

    def accept(self, c: TransactionCandidate, *, loose: bool = False) -> bool:
        """Record ``c`` and return ``True`` unless it is already known."""

        skey = strict_key(c, self.tz_id)
        lkey = loose_key(c, self.tz_id)
        if skey in self.strict or (loose and lkey in self.loose):
            return False
        self.strict.add(skey)
        self.loose.add(lkey)
        self.message_ids.add(c.message_id)
        return True

    def __len__(self) -> int:
        return len(self.strict)


__all__ = [
    "ExistingIndex",
    "format_amount",
    "loose_key",
    "loose_key_from_row",
    "strict_key",
    "strict_key_from_row",
]
