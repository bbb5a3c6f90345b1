"""db: ledger storage (SQLAlchemy).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation
- ``LedgerTransaction`` ORM model and ``ledger_table`` for a configured name
- Engine/session helpers in ``notify_ledger.db.client``
"""

from __future__ import annotations

from .models import Base, LedgerTransaction, ledger_table

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "LedgerTransaction",
    "ledger_table",
]
