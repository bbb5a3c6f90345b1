import csv
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

from notify_ledger.api import backfill_expense, export_csv, ingest
from notify_ledger.config import Settings
from notify_ledger.db.client import get_engine, session_scope
from notify_ledger.models import DEFAULT_HEADER, OutputRow
from notify_ledger.store import (
    EXPENSE,
    append_rows,
    ensure_schema,
    list_rows,
    load_existing_rows,
)
from tests.helpers.mail import FakeMailbox, fubon_html, make_message, transfer_plain

NOW = datetime(2024, 3, 10, 4, 0, tzinfo=UTC)
DIGEST = "正卡 1234 2024/03/05 13:22 TW\nNT$1,250 星巴克 餐飲\nNT$300 超商"


def _mailbox() -> FakeMailbox:
    return FakeMailbox(
        {
            "即時消費通知": [make_message("f1", html=fubon_html())],
            "消費彙整通知": [make_message("d1", plain=DIGEST)],
            "CUBE App轉帳通知": [make_message("t1", plain=transfer_plain())],
        }
    )


def _row(message_id: str, *, bank: str = "國泰", amount: str = "100") -> OutputRow:
    return OutputRow(
        recorded=False,
        bank=bank,
        auth_at=datetime(2024, 3, 5, 5, 0, tzinfo=UTC),
        card_last4="1234",
        amount=Decimal(amount),
        merchant="m",
        category="c",
        link=f"https://mail.google.com/mail/#all/{message_id}",
        message_id=message_id,
    )


def test_append_and_load_roundtrip_in_utc(settings: Settings):
    table = ensure_schema(get_engine(database_url=settings.database_url))
    with session_scope(database_url=settings.database_url) as s:
        assert append_rows(s, table=table, rows=[_row("a", amount="12.50")]) == 1

    with session_scope(database_url=settings.database_url) as s:
        (loaded,) = load_existing_rows(s, table=table)
        (listed,) = list_rows(s, table=table)

    assert loaded.auth_at == datetime(2024, 3, 5, 5, 0, tzinfo=UTC)
    assert loaded.auth_at.tzinfo is not None
    assert loaded.amount == Decimal("12.5")
    # Owner-editable columns are not needed for seeding.
    assert loaded.merchant == ""
    assert listed["flow"] == EXPENSE
    assert listed["merchant"] == "m"


def test_ingest_appends_then_is_idempotent(settings: Settings):
    first = ingest(settings, _mailbox(), days=15, now=NOW)
    assert len(first.rows) == 4

    second = ingest(settings, _mailbox(), days=15, now=NOW)
    assert second.rows == []

    with session_scope(database_url=settings.database_url) as s:
        table = ensure_schema(get_engine(database_url=settings.database_url))
        assert len(list_rows(s, table=table)) == 4


def test_ingest_dry_run_writes_nothing(settings: Settings):
    result = ingest(settings, _mailbox(), days=15, now=NOW, dry_run=True)
    assert len(result.rows) == 4

    with session_scope(database_url=settings.database_url) as s:
        table = ensure_schema(get_engine(database_url=settings.database_url))
        assert list_rows(s, table=table) == []


def test_ingest_window_defaults_to_settings(settings: Settings):
    narrow = settings.model_copy(update={"window_days": 1})
    # Window is only 2024/03/10; every fixture is dated 2024/03/05.
    result = ingest(narrow, _mailbox(), now=NOW)
    assert result.rows == []


def test_owner_edits_do_not_break_dedup(settings: Settings):
    ingest(settings, _mailbox(), days=15, now=NOW)
    table = ensure_schema(get_engine(database_url=settings.database_url))
    with session_scope(database_url=settings.database_url) as s:
        s.execute(table.update().values(merchant="edited", category="edited", recorded=True))

    assert ingest(settings, _mailbox(), days=15, now=NOW).rows == []


def test_export_csv(settings: Settings, tmp_path: Path):
    ingest(settings, _mailbox(), days=15, now=NOW)
    out = tmp_path / "ledger.csv"

    assert export_csv(settings, out) == 4

    with out.open(encoding="utf-8", newline="") as f:
        header, *rows = list(csv.reader(f))
    assert header == list(DEFAULT_HEADER)
    # Ordered by authorization time: the morning transfer comes first.
    assert rows[0] == [
        "FALSE",
        "國泰",
        "2024/03/05 08:15:30",
        "12345",
        "3000",
        "房租",
        "轉帳",
        "https://mail.google.com/mail/#all/t1",
        "t1",
    ]
    assert [r[8] for r in rows] == ["t1", "d1", "d1", "f1"]
    assert rows[-1][2] == "2024/03/05 13:22:05"


def test_export_respects_custom_header(settings: Settings, tmp_path: Path):
    ingest(settings, _mailbox(), days=15, now=NOW)
    short = settings.model_copy(update={"header": ("done", "bank", "when")})
    out = tmp_path / "short.csv"
    export_csv(short, out)
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "done,bank,when"
    assert all(len(line.split(",")) == 3 for line in lines)


def test_backfill_expense_only_touches_card_rows_without_flow(settings: Settings):
    table = ensure_schema(get_engine(database_url=settings.database_url))
    with session_scope(database_url=settings.database_url) as s:
        append_rows(s, table=table, rows=[_row("a"), _row("b", bank="富邦")], flow_default=None)
        append_rows(s, table=table, rows=[_row("c", bank="其他")], flow_default=None)
        append_rows(s, table=table, rows=[_row("d")], flow_default="收入")

    assert backfill_expense(settings) == 2
    assert backfill_expense(settings) == 0

    with session_scope(database_url=settings.database_url) as s:
        flows = {r["message_id"]: r["flow"] for r in list_rows(s, table=table)}
    assert flows == {"a": EXPENSE, "b": EXPENSE, "c": None, "d": "收入"}
