"""Cathay consumption digest: many transactions per e-mail, line by line.

The plain-text body is a sequence of card-info lines, each followed by one or
more amount lines::

    正卡 1234 2024/03/05 13:22 TW
    NT$1,250 星巴克 餐飲
    NT$300 超商

Every line is classified as a card-info line, an amount line, or ignored.
A card-info line replaces the whole parse context (last seen wins, no
merging); an amount line emits a record bound to the context value current
at that line. Contexts are immutable, so a later card line can never change
a record that was already emitted.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeAlias

from ..datetimes import normalize_time
from ..extract import IDEOGRAPHIC_SPACE, parse_amount
from ..logging_setup import get_logger
from ..models import EMPTY_CONTEXT, ParseContext, RawMessage, TransactionCandidate
from .base import make_candidate

logger = get_logger("notify_ledger.parsers.cathay_digest")

BANK = "國泰"

_TOP_LAST4_RE = re.compile(r"卡號後4碼[:：]?\s*(\d{4})")
_CARD_LINE_RE = re.compile(
    r"(正卡|附卡)\s*(\d{4})?\s*(\d{4}/\d{2}/\d{2})\s*(\d{2}:\d{2})\s*([A-Z]{2})"
)
_AMOUNT_LINE_RE = re.compile(r"^NT\$([0-9,]+)\s+(.+)$")


@dataclass(frozen=True, slots=True)
class CardInfoLine:
    context: ParseContext


@dataclass(frozen=True, slots=True)
class AmountLine:
    amount: Decimal | None
    merchant: str
    category: str


LineKind: TypeAlias = CardInfoLine | AmountLine | None


@dataclass(frozen=True, slots=True)
class DigestRecord:
    """An amount line joined with the card context in force when it was read."""

    context: ParseContext
    card_last4: str | None
    amount: Decimal | None
    merchant: str
    category: str
    raw_line: str


def split_lines(text: str) -> list[str]:
    lines = (s.replace(IDEOGRAPHIC_SPACE, " ").strip() for s in (text or "").split("\n"))
    return [s for s in lines if s]


def classify_line(line: str) -> LineKind:
    m = _CARD_LINE_RE.search(line)
    if m:
        return CardInfoLine(
            ParseContext(
                card_type=m.group(1),
                last4=m.group(2) or None,
                date=m.group(3),
                time=m.group(4),
                region=m.group(5),
            )
        )

    m = _AMOUNT_LINE_RE.match(line)
    if m:
        parts = m.group(2).strip().split()
        if len(parts) > 1:
            merchant, category = " ".join(parts[:-1]), parts[-1]
        else:
            merchant, category = parts[0], ""
        return AmountLine(amount=parse_amount(m.group(1)), merchant=merchant, category=category)

    return None


def parse_digest_lines(text: str) -> Iterator[DigestRecord]:
    """Fold the body's lines into records, in document order."""

    m = _TOP_LAST4_RE.search(text or "")
    fallback_last4 = m.group(1) if m else None

    ctx = EMPTY_CONTEXT
    for line in split_lines(text):
        kind = classify_line(line)
        if isinstance(kind, CardInfoLine):
            ctx = kind.context
        elif isinstance(kind, AmountLine):
            yield DigestRecord(
                context=ctx,
                card_last4=ctx.last4 or fallback_last4,
                amount=kind.amount,
                merchant=kind.merchant,
                category=kind.category,
                raw_line=line,
            )


class CathayDigestParser:
    """Multi-record parser over the plain body of a digest notification."""

    bank = BANK

    def __init__(self, tz_id: str) -> None:
        self.tz_id = tz_id

    def parse(self, message: RawMessage) -> list[TransactionCandidate]:
        out: list[TransactionCandidate] = []
        for rec in parse_digest_lines(message.plain_body):
            if not rec.context.date:
                logger.debug("amount line before any card line, dropped: %s", rec.raw_line)
                continue
            try:
                candidate = make_candidate(
                    bank=self.bank,
                    message=message,
                    ymd=rec.context.date,
                    hms=normalize_time(rec.context.time),
                    tz_id=self.tz_id,
                    card_last4=rec.card_last4,
                    amount=rec.amount,
                    merchant=rec.merchant,
                    category=rec.category,
                )
            except ValueError as e:
                logger.debug("unusable card line time, dropped: %s (%s)", rec.raw_line, e)
                continue
            out.append(candidate)
        return out
