"""Fubon real-time card notification: one transaction per e-mail.

The HTML layout changes between notification variants (``即時消費通知``,
``富邦信用卡消費通知``), so every field is an ordered list of label variants
and the merchant/category patterns tolerate table-cell tags between the
label and the value.
"""

from __future__ import annotations

import re

from ..datetimes import normalize_date, normalize_time
from ..extract import MessageViews, parse_amount, pick, pick_span
from ..logging_setup import get_logger
from ..models import RawMessage, TransactionCandidate
from .base import make_candidate

logger = get_logger("notify_ledger.parsers.fubon")

BANK = "富邦"

DATE_RULES = (
    re.compile(r"授權日期：\s*([0-9]{3})\s*年\s*([0-9]{1,2})\s*月\s*([0-9]{1,2})\s*日"),
    re.compile(r"消費日期：\s*([0-9]{3})\s*年\s*([0-9]{1,2})\s*月\s*([0-9]{1,2})\s*日"),
    re.compile(r"授權日期：\s*([0-9]{4})[/\-]([0-9]{1,2})[/\-]([0-9]{1,2})"),
    re.compile(r"消費日期：\s*([0-9]{4})[/\-]([0-9]{1,2})[/\-]([0-9]{1,2})"),
)

TIME_RULES = (
    re.compile(r"授權時間：\s*([0-9]{1,2}:[0-9]{1,2}:[0-9]{1,2})"),
    re.compile(r"授權時間：\s*([0-9]{1,2}:[0-9]{1,2})"),
    re.compile(r"消費時間：\s*([0-9]{1,2}:[0-9]{1,2}:[0-9]{1,2})"),
    re.compile(r"消費時間：\s*([0-9]{1,2}:[0-9]{1,2})"),
)

LAST4_RULES = (
    re.compile(r"消費卡號末四碼：\s*([0-9]{4})"),
    re.compile(r"卡號末四碼：\s*([0-9]{4})"),
)

AMOUNT_RULES = (
    re.compile(r"授權金額：\s*NT\$?\s*([\d,]+)"),
    re.compile(r"金額：\s*NT\$?\s*([\d,]+)"),
)

MERCHANT_RULES = (
    re.compile(
        r"(交易內容|交易說明|商店名稱|特店名稱|特店|消費內容)[:：]?\s*(?:</[^>]+>\s*<[^>]+>)*\s*([^<\n\r]+)",
        re.IGNORECASE,
    ),
)

CATEGORY_RULES = (
    re.compile(
        r"(消費類別|交易類型|類別)[:：]?\s*(?:</[^>]+>\s*<[^>]+>)*\s*([^<\n\r]+)",
        re.IGNORECASE,
    ),
)


class FubonParser:
    """Single-record parser; a message without a readable date yields nothing."""

    bank = BANK

    def __init__(self, tz_id: str) -> None:
        self.tz_id = tz_id

    def parse(self, message: RawMessage) -> list[TransactionCandidate]:
        views = MessageViews.build(message.html_body, message.plain_body)

        ymd = normalize_date(pick_span(DATE_RULES, views))
        if not ymd:
            logger.info("no authorization date found; skipping message %s", message.id)
            return []

        hms = normalize_time(pick(TIME_RULES, views))
        try:
            candidate = make_candidate(
                bank=self.bank,
                message=message,
                ymd=ymd,
                hms=hms,
                tz_id=self.tz_id,
                card_last4=pick(LAST4_RULES, views),
                amount=parse_amount(pick(AMOUNT_RULES, views)),
                merchant=pick(MERCHANT_RULES, views),
                category=pick(CATEGORY_RULES, views),
            )
        except ValueError as e:
            logger.info(
                "unusable authorization time %s %s in message %s: %s", ymd, hms, message.id, e
            )
            return []
        return [candidate]
