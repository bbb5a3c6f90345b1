from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, MetaData, Numeric, String, Table, Text
from sqlalchemy import false as sa_false
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: ledger transactions
# ---------------------------


class LedgerTransaction(Base):
    """One ingested notification transaction.

    Column order follows the ledger layout: the identity columns the ingest
    dedups on (bank, auth_at, card_last4, amount, message_id), the columns the
    owner edits after insert (merchant, category, recorded) and ``flow``, an
    income/expense classification managed outside the ingest.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recorded: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa_false())
    bank: Mapped[str] = mapped_column(String, nullable=False)
    # Written in UTC; SQLite hands back naive values which the store re-tags.
    auth_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    card_last4: Mapped[str] = mapped_column(String(8), nullable=False, server_default="")
    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    merchant: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    category: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    link: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    # Indexed for lookups only; uniqueness is enforced by the ingest dedup keys.
    message_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    flow: Mapped[str | None] = mapped_column(String, nullable=True)


_TABLES = MetaData()


def ledger_table(name: str = LedgerTransaction.__tablename__) -> Table:
    """Return the ledger table schema under ``name`` (cached per name)."""

    if name == LedgerTransaction.__tablename__:
        return LedgerTransaction.__table__  # type: ignore[return-value]
    existing = _TABLES.tables.get(name)
    if existing is not None:
        return existing
    return LedgerTransaction.__table__.to_metadata(_TABLES, name=name)


__all__ = ["Base", "LedgerTransaction", "ledger_table"]
