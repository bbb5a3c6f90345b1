"""Per-source notification parsers sharing the :class:`SourceParser` capability."""

from .base import SourceParser, make_candidate
from .cathay_digest import CathayDigestParser, classify_line, parse_digest_lines
from .cathay_transfer import CathayTransferParser
from .fubon import FubonParser

__all__ = [
    "CathayDigestParser",
    "CathayTransferParser",
    "FubonParser",
    "SourceParser",
    "classify_line",
    "make_candidate",
    "parse_digest_lines",
]
