"""Data models shared by the parsers, the dedup index and the store.

Field order of :class:`OutputRow` is the store column order; the store adds
one more externally managed classification column that the ingest never
produces.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

GMAIL_LINK_PREFIX = "https://mail.google.com/mail/#all/"

DEFAULT_HEADER: tuple[str, ...] = (
    "已記帳",
    "銀行",
    "授權日期時間",
    "卡末四碼",
    "金額_NTD",
    "交易內容/商店",
    "類別",
    "Gmail連結",
    "MessageId",
)


def message_link(message_id: str) -> str:
    return f"{GMAIL_LINK_PREFIX}{message_id}"


@dataclass(frozen=True, slots=True)
class RawMessage:
    """A notification e-mail as handed over by the message source."""

    id: str
    subject: str
    sent_at: datetime | None
    html_body: str
    plain_body: str

    @property
    def link(self) -> str:
        return message_link(self.id)


@dataclass(frozen=True, slots=True)
class TransactionCandidate:
    """One transaction extracted from a single message.

    ``auth_at`` is always timezone-aware; ``auth_date`` is the same day in
    canonical ``yyyy/mm/dd`` form and is what the ingest window compares.
    ``amount`` is ``None`` when the message carried no parseable amount.
    """

    bank: str
    auth_at: datetime
    auth_date: str
    card_last4: str
    amount: Decimal | None
    merchant: str
    category: str
    message_id: str
    link: str


@dataclass(frozen=True, slots=True)
class ParseContext:
    """Card-info state of the digest parser, replaced wholesale per card line."""

    card_type: str | None = None
    last4: str | None = None
    date: str | None = None
    time: str | None = None
    region: str | None = None


EMPTY_CONTEXT = ParseContext()


class OutputRow(NamedTuple):
    """A store row in column order (classification column excluded)."""

    recorded: bool
    bank: str
    auth_at: datetime
    card_last4: str
    amount: Decimal | None
    merchant: str
    category: str
    link: str
    message_id: str

    @classmethod
    def from_candidate(cls, c: TransactionCandidate) -> OutputRow:
        return cls(
            recorded=False,
            bank=c.bank,
            auth_at=c.auth_at,
            card_last4=c.card_last4 or "",
            amount=c.amount,
            merchant=c.merchant or "",
            category=c.category or "",
            link=c.link,
            message_id=c.message_id,
        )


__all__ = [
    "DEFAULT_HEADER",
    "EMPTY_CONTEXT",
    "GMAIL_LINK_PREFIX",
    "OutputRow",
    "ParseContext",
    "RawMessage",
    "TransactionCandidate",
    "message_link",
]
