"""Ordered-fallback field extraction over the textual views of a message.

A rule list is plain data: a tuple of compiled patterns tried in order. Each
pattern is matched against the views of a message in a fixed priority
(markup-stripped text, raw markup, normalized plain text) and the first
non-empty capture wins. No match is reported as ``""``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TypeAlias

from bs4 import BeautifulSoup

FieldRules: TypeAlias = Sequence[re.Pattern[str]]

IDEOGRAPHIC_SPACE = "　"
NBSP = "\xa0"


def html_to_text(html: str | None) -> str:
    """Strip markup while keeping line structure (``<br>``/``</p>`` -> newline).

    Adjacent cells are joined without a separator so a label and its value
    in neighbouring ``<td>`` elements read as one run of text.
    """

    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for p in soup.find_all("p"):
        p.append("\n")

    text = soup.get_text()
    return text.replace(NBSP, " ").replace(IDEOGRAPHIC_SPACE, " ").strip()


def normalize_plain(plain: str | None) -> str:
    return (plain or "").replace(IDEOGRAPHIC_SPACE, " ")


@dataclass(frozen=True, slots=True)
class MessageViews:
    """The three textual views of one message, in match priority order."""

    stripped: str
    markup: str
    plain: str

    @classmethod
    def build(cls, html: str | None, plain: str | None) -> MessageViews:
        return cls(stripped=html_to_text(html), markup=html or "", plain=normalize_plain(plain))

    def __iter__(self) -> Iterator[str]:
        yield self.stripped
        yield self.markup
        yield self.plain


def _capture(m: re.Match[str]) -> str:
    # Prefer the second group when the pattern has a label group in front.
    groups = m.groups()
    if len(groups) >= 2 and groups[1]:
        return groups[1]
    if groups and groups[0]:
        return groups[0]
    return ""


def pick(rules: FieldRules, views: MessageViews) -> str:
    """Return the first non-empty capture across ``rules`` x ``views``."""

    for rx in rules:
        for text in views:
            if not text:
                continue
            m = rx.search(text)
            if m is None:
                continue
            value = _capture(m)
            if value:
                return value.strip()
    return ""


def pick_span(rules: FieldRules, views: MessageViews) -> str:
    """Like :func:`pick` but return the whole matched span (group 0)."""

    for rx in rules:
        for text in views:
            if not text:
                continue
            m = rx.search(text)
            if m is not None and m.group(0):
                return m.group(0)
    return ""


def parse_amount(raw: str | None) -> Decimal | None:
    """Strip thousands separators and parse as ``Decimal``; ``None`` when absent."""

    if raw is None:
        return None
    s = raw.replace(",", "").strip()
    if not s:
        return None
    try:
        return Decimal(s)
    except InvalidOperation:
        return None


__all__ = [
    "FieldRules",
    "MessageViews",
    "html_to_text",
    "normalize_plain",
    "parse_amount",
    "pick",
    "pick_span",
]
