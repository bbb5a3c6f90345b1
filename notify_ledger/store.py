"""Ledger persistence: seeding the dedup index and appending new rows.

The ingest reads only the identity columns of existing rows and never
rewrites them; ``merchant``/``category``/``recorded`` belong to the owner
once a row is in the ledger. Instants are written in UTC.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Table, insert, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .db.models import ledger_table
from .logging_setup import get_logger
from .models import OutputRow

logger = get_logger("notify_ledger.store")

EXPENSE = "支出"
CARD_BANKS: tuple[str, ...] = ("富邦", "國泰")


def _as_utc(dt: datetime) -> datetime:
    return dt.astimezone(UTC)


def _from_store(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def ensure_schema(engine: Engine, *, table_name: str = "transactions") -> Table:
    """Create the ledger table (and its indexes) when missing."""

    table = ledger_table(table_name)
    table.create(bind=engine, checkfirst=True)
    return table


def load_existing_rows(session: Session, *, table: Table) -> list[OutputRow]:
    """Return every stored row as an :class:`OutputRow` for index seeding.

    Editable columns are returned blank; they take no part in dedup keys.
    """

    c = table.c
    stmt = select(c.bank, c.auth_at, c.card_last4, c.amount, c.link, c.message_id)
    rows: list[OutputRow] = []
    for bank, auth_at, last4, amount, link, message_id in session.execute(stmt):
        rows.append(
            OutputRow(
                recorded=False,
                bank=bank or "",
                auth_at=_from_store(auth_at),
                card_last4=last4 or "",
                amount=amount,
                merchant="",
                category="",
                link=link or "",
                message_id=message_id or "",
            )
        )
    return rows


def append_rows(
    session: Session,
    *,
    table: Table,
    rows: Sequence[OutputRow],
    flow_default: str | None = EXPENSE,
) -> int:
    """Insert ``rows`` in order; new rows get ``flow_default`` as classification."""

    if not rows:
        return 0
    payloads: list[dict[str, Any]] = [
        {
            "recorded": bool(r.recorded),
            "bank": r.bank,
            "auth_at": _as_utc(r.auth_at),
            "card_last4": r.card_last4 or "",
            "amount": r.amount,
            "merchant": r.merchant or "",
            "category": r.category or "",
            "link": r.link,
            "message_id": r.message_id,
            "flow": flow_default,
        }
        for r in rows
    ]
    session.execute(insert(table), payloads)
    logger.info("appended %d rows to %s", len(payloads), table.name)
    return len(payloads)


def list_rows(session: Session, *, table: Table) -> list[dict[str, Any]]:
    """All rows ordered by authorization time, then message id."""

    c = table.c
    stmt = select(
        c.recorded,
        c.bank,
        c.auth_at,
        c.card_last4,
        c.amount,
        c.merchant,
        c.category,
        c.link,
        c.message_id,
        c.flow,
    ).order_by(c.auth_at.asc(), c.message_id.asc())
    out: list[dict[str, Any]] = []
    for m in session.execute(stmt).mappings():
        row = dict(m)
        row["auth_at"] = _from_store(row["auth_at"])
        out.append(row)
    return out


def backfill_expense_flow(
    session: Session,
    *,
    table: Table,
    banks: Iterable[str] = CARD_BANKS,
    value: str = EXPENSE,
) -> int:
    """Fill empty classification on card-bank rows; returns rows updated."""

    c = table.c
    stmt = (
        update(table)
        .where(c.bank.in_(list(banks)))
        .where(or_(c.flow.is_(None), c.flow == ""))
        .values(flow=value)
    )
    updated = session.execute(stmt).rowcount or 0
    logger.info("backfill done. updated=%d", updated)
    return updated


__all__ = [
    "CARD_BANKS",
    "EXPENSE",
    "append_rows",
    "backfill_expense_flow",
    "ensure_schema",
    "list_rows",
    "load_existing_rows",
]
