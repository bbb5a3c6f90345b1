"""Common parser capability shared by every notification source."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

from ..datetimes import to_instant
from ..models import RawMessage, TransactionCandidate


@runtime_checkable
class SourceParser(Protocol):
    """Turn one message into zero or more transaction candidates."""

    bank: str

    def parse(self, message: RawMessage) -> list[TransactionCandidate]: ...


def make_candidate(
    *,
    bank: str,
    message: RawMessage,
    ymd: str,
    hms: str,
    tz_id: str,
    card_last4: str | None,
    amount: Decimal | None,
    merchant: str | None,
    category: str | None,
) -> TransactionCandidate:
    """Build a candidate from already-normalized date/time parts.

    ``ymd`` must be a canonical non-empty date; callers reject the message (or
    line) before reaching this point when it is not.
    """

    return TransactionCandidate(
        bank=bank,
        auth_at=to_instant(ymd, hms, tz_id),
        auth_date=ymd,
        card_last4=card_last4 or "",
        amount=amount,
        merchant=(merchant or "").strip(),
        category=(category or "").strip(),
        message_id=message.id,
        link=message.link,
    )
