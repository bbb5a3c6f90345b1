"""Ingest orchestration: sources -> parsers -> window -> dedup -> rows.

Processing is strictly sequential: sources in configured order, messages in
retrieval order, lines in document order. The only state carried across
messages is the :class:`~notify_ledger.dedup.ExistingIndex` handed in by the
caller, which also gives within-run dedup.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TypeAlias

from .config import Settings
from .datetimes import IngestWindow, format_instant
from .dedup import ExistingIndex, format_amount
from .logging_setup import source_logger
from .mailbox import build_query, cathay_digest_scope, cathay_transfer_scope
from .models import OutputRow, RawMessage
from .parsers import CathayDigestParser, CathayTransferParser, FubonParser, SourceParser


FetchFn: TypeAlias = Callable[[str, int], Sequence[RawMessage]]


@dataclass(frozen=True, slots=True)
class SourceSpec:
    """One configured notification source and its dedup policy.

    ``skip_known_message_ids`` skips parsing entirely for messages whose id is
    already in the store. ``loose_dedup`` additionally rejects candidates
    whose loose key (no message id) is already known.
    """

    name: str
    parser: SourceParser
    scope: str
    max_results: int
    skip_known_message_ids: bool = False
    loose_dedup: bool = False


@dataclass(slots=True)
class SourceStats:
    name: str
    messages: int = 0
    skipped_known: int = 0
    candidates: int = 0
    out_of_window: int = 0
    duplicates: int = 0
    accepted: int = 0


@dataclass(slots=True)
class PipelineResult:
    rows: list[OutputRow] = field(default_factory=list)
    stats: list[SourceStats] = field(default_factory=list)


def default_sources(settings: Settings) -> list[SourceSpec]:
    """Fubon, Cathay digest and Cathay transfer, in that fixed order."""

    tz = settings.tz
    loose = settings.loose_dedup_sources
    return [
        SourceSpec(
            name="fubon",
            parser=FubonParser(tz),
            scope=settings.fubon_query_subject,
            max_results=500,
            loose_dedup="fubon" in loose,
        ),
        SourceSpec(
            name="cathay_digest",
            parser=CathayDigestParser(tz),
            scope=cathay_digest_scope(settings.cathay_label, settings.cathay_subject),
            max_results=200,
            loose_dedup="cathay_digest" in loose,
        ),
        SourceSpec(
            name="cathay_transfer",
            parser=CathayTransferParser(tz),
            scope=cathay_transfer_scope(
                settings.cathay_transfer_from, settings.cathay_transfer_subject
            ),
            max_results=100,
            skip_known_message_ids=True,
            loose_dedup="cathay_transfer" in loose,
        ),
    ]


def _summary(row: OutputRow, tz_id: str) -> str:
    return json.dumps(
        {
            "bank": row.bank,
            "cardLast4": row.card_last4,
            "authAt": format_instant(row.auth_at, tz_id),
            "amount": format_amount(row.amount),
            "currency": "TWD",
            "merchant": row.merchant,
            "category": row.category,
        },
        ensure_ascii=False,
    )


def run_pipeline(
    sources: Sequence[SourceSpec],
    fetch: FetchFn,
    window: IngestWindow,
    index: ExistingIndex,
) -> PipelineResult:
    """Parse every source's messages and return the rows that are new.

    ``fetch(query, max_results)`` retrieves messages for a Gmail-style query.
    ``index`` is updated in place as candidates are accepted.
    """

    tz_id = index.tz_id
    result = PipelineResult()

    for src in sources:
        log = source_logger(src.name)
        stats = SourceStats(name=src.name)
        result.stats.append(stats)
        query = build_query(src.scope, window)
        log.debug("query %s (max %d)", query, src.max_results)

        for msg in fetch(query, src.max_results):
            stats.messages += 1
            if src.skip_known_message_ids and index.has_message(msg.id):
                stats.skipped_known += 1
                log.debug("skipping known message %s", msg.id)
                continue

            candidates = src.parser.parse(msg)
            stats.candidates += len(candidates)
            log.info(
                "=== Subject: %s | Date: %s | total %d entries ===",
                msg.subject,
                msg.sent_at,
                len(candidates),
            )

            for cand in candidates:
                if not window.contains(cand.auth_date):
                    stats.out_of_window += 1
                    continue
                if not index.accept(cand, loose=src.loose_dedup):
                    stats.duplicates += 1
                    log.debug("duplicate %s from message %s", cand.auth_date, msg.id)
                    continue
                row = OutputRow.from_candidate(cand)
                result.rows.append(row)
                stats.accepted += 1
                log.info("created transaction: %s", _summary(row, tz_id))

        log.info(
            "messages=%d skipped=%d candidates=%d out_of_window=%d duplicates=%d accepted=%d",
            stats.messages,
            stats.skipped_known,
            stats.candidates,
            stats.out_of_window,
            stats.duplicates,
            stats.accepted,
        )

    return result


__all__ = [
    "FetchFn",
    "PipelineResult",
    "SourceSpec",
    "SourceStats",
    "default_sources",
    "run_pipeline",
]
