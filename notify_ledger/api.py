"""Public entry points for ``notify_ledger``.

Each function does its store I/O in short transactions and keeps network
work (mailbox search) outside of any open database session.
"""

from __future__ import annotations

import csv
from datetime import datetime
from os import PathLike
from pathlib import Path

from .config import Settings
from .datetimes import format_instant, window_for
from .db.client import get_engine, session_scope
from .dedup import ExistingIndex, format_amount
from .logging_setup import get_logger
from .mailbox import MessageSource
from .pipeline import PipelineResult, SourceSpec, default_sources, run_pipeline
from .store import (
    CARD_BANKS,
    append_rows,
    backfill_expense_flow,
    ensure_schema,
    list_rows,
    load_existing_rows,
)

logger = get_logger("notify_ledger.api")


def ingest(
    settings: Settings,
    mailbox: MessageSource,
    *,
    days: int | None = None,
    now: datetime | None = None,
    dry_run: bool = False,
    sources: list[SourceSpec] | None = None,
) -> PipelineResult:
    """Pull the last ``days`` of notifications and append new rows to the ledger.

    Parameters
    ----------
    settings:
        Loaded configuration (store URL, timezone, search scopes).
    mailbox:
        Message source used for every configured search scope.
    days:
        Window length in calendar days; defaults to ``settings.window_days``.
    now:
        Reference time for the window (defaults to the current time).
    dry_run:
        Compute the new rows without writing them.
    """

    engine = get_engine(database_url=settings.database_url)
    table = ensure_schema(engine, table_name=settings.ledger_table)

    with session_scope(database_url=settings.database_url) as session:
        existing = load_existing_rows(session, table=table)
    index = ExistingIndex.from_rows(existing, settings.tz)
    logger.info("seeded dedup index from %d stored rows", len(existing))

    window = window_for(days or settings.window_days, settings.tz, now=now)
    result = run_pipeline(
        sources if sources is not None else default_sources(settings),
        mailbox.search,
        window,
        index,
    )

    if result.rows and not dry_run:
        with session_scope(database_url=settings.database_url) as session:
            append_rows(session, table=table, rows=result.rows)

    logger.info("Done. inserted=%d%s", len(result.rows), " (dry run)" if dry_run else "")
    return result


def export_csv(settings: Settings, out_path: str | PathLike[str]) -> int:
    """Write the ledger to ``out_path`` as CSV, ordered by authorization time.

    The header row uses the configured labels; columns beyond the number of
    labels (the classification column with the default header) are omitted.
    Returns the number of data rows written.
    """

    engine = get_engine(database_url=settings.database_url)
    table = ensure_schema(engine, table_name=settings.ledger_table)
    with session_scope(database_url=settings.database_url) as session:
        rows = list_rows(session, table=table)

    header = list(settings.header)
    width = len(header)
    with Path(out_path).open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for r in rows:
            values = [
                "TRUE" if r["recorded"] else "FALSE",
                r["bank"],
                format_instant(r["auth_at"], settings.tz),
                r["card_last4"] or "",
                format_amount(r["amount"]),
                r["merchant"] or "",
                r["category"] or "",
                r["link"] or "",
                r["message_id"] or "",
                r["flow"] or "",
            ]
            writer.writerow(values[:width])
    return len(rows)


def backfill_expense(settings: Settings) -> int:
    """Set the classification of card-bank rows with none to expense."""

    engine = get_engine(database_url=settings.database_url)
    table = ensure_schema(engine, table_name=settings.ledger_table)
    with session_scope(database_url=settings.database_url) as session:
        return backfill_expense_flow(session, table=table, banks=CARD_BANKS)


__all__ = ["backfill_expense", "export_csv", "ingest"]
