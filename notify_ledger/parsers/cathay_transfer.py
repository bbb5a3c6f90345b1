"""Cathay CUBE App transfer notification: one transfer per e-mail."""

from __future__ import annotations

import re

from ..extract import MessageViews, parse_amount, pick
from ..logging_setup import get_logger
from ..models import RawMessage, TransactionCandidate
from .base import make_candidate

logger = get_logger("notify_ledger.parsers.cathay_transfer")

BANK = "國泰"
TRANSFER = "轉帳"

_WHEN_RE = re.compile(r"您於(\d{4}/\d{2}/\d{2})\s+(\d{2}:\d{2}:\d{2})")

AMOUNT_RULES = (re.compile(r"轉帳金額\s+([\d,]+)"),)

# Masked account numbers end in the visible 4-5 digits; prefer a whole
# trailing run, else take the last digits on the line.
ACCOUNT_RULES = (
    re.compile(r"轉入帳號\s+.*(?<!\d)(\d{4,5})(?!\d)"),
    re.compile(r"轉入帳號\s+.*(\d{4,5})"),
)

REMARK_RULES = (re.compile(r"備註[^\S\n]+(.*)"),)


class CathayTransferParser:
    """Date and time must appear together; otherwise the message is rejected."""

    bank = BANK

    def __init__(self, tz_id: str) -> None:
        self.tz_id = tz_id

    def parse(self, message: RawMessage) -> list[TransactionCandidate]:
        views = MessageViews.build(None, message.plain_body)

        when = _WHEN_RE.search(views.plain)
        if when is None:
            logger.info("no transfer date/time found; skipping message %s", message.id)
            return []

        try:
            candidate = make_candidate(
                bank=self.bank,
                message=message,
                ymd=when.group(1),
                hms=when.group(2),
                tz_id=self.tz_id,
                card_last4=pick(ACCOUNT_RULES, views),
                amount=parse_amount(pick(AMOUNT_RULES, views)),
                merchant=pick(REMARK_RULES, views) or TRANSFER,
                category=TRANSFER,
            )
        except ValueError as e:
            logger.info("unusable transfer time %r in message %s: %s", when.group(0), message.id, e)
            return []
        return [candidate]
