"""Public interface for the ``notify_ledger`` package.

Symbol re-exports only; no runtime logic here.
"""

from .api import backfill_expense, export_csv, ingest
from .config import ConfigError, Settings, load_settings
from .datetimes import IngestWindow, normalize_date, normalize_time, to_instant, window_for
from .dedup import ExistingIndex, loose_key, strict_key
from .models import OutputRow, ParseContext, RawMessage, TransactionCandidate
from .parsers import CathayDigestParser, CathayTransferParser, FubonParser, SourceParser
from .pipeline import PipelineResult, SourceSpec, default_sources, run_pipeline

__all__ = [
    # API
    "ingest",
    "export_csv",
    "backfill_expense",
    "run_pipeline",
    "default_sources",
    # Config
    "ConfigError",
    "Settings",
    "load_settings",
    # Normalization / dedup
    "IngestWindow",
    "normalize_date",
    "normalize_time",
    "to_instant",
    "window_for",
    "ExistingIndex",
    "strict_key",
    "loose_key",
    # Models / parsers
    "OutputRow",
    "ParseContext",
    "RawMessage",
    "TransactionCandidate",
    "SourceParser",
    "FubonParser",
    "CathayDigestParser",
    "CathayTransferParser",
    "SourceSpec",
    "PipelineResult",
]
