"""Message retrieval: search scopes and the Gmail IMAP message source.

Scopes are Gmail search expressions (``subject:``, ``label:``, ``from:``)
bounded by ``after:``/``before:`` dates. :class:`GmailImapSource` runs them
through Gmail's ``X-GM-RAW`` IMAP extension, so the same expression works on
the web UI and here, and exposes the Gmail message id (``X-GM-MSGID`` in
hex) which is what the ``#all/<id>`` web links use.
"""

from __future__ import annotations

import email
import email.message
import imaplib
import re
from collections.abc import Sequence
from datetime import datetime
from email.header import decode_header
from email.utils import parsedate_to_datetime
from typing import Protocol

from .datetimes import IngestWindow
from .logging_setup import get_logger
from .models import RawMessage

logger = get_logger("notify_ledger.mailbox")

ALL_MAIL = '"[Gmail]/All Mail"'

_MSGID_RE = re.compile(rb"X-GM-MSGID (\d+)")


class MailboxError(RuntimeError):
    """Raised when the mailbox cannot be reached or searched."""


class MessageSource(Protocol):
    def search(self, query: str, max_results: int) -> list[RawMessage]: ...


# ---------------------------------------------------------------------------
# Search scopes
# ---------------------------------------------------------------------------


def build_query(terms: str, window: IngestWindow) -> str:
    return f"{terms} after:{window.start_ymd} before:{window.before_ymd}"


def cathay_digest_scope(label: str, subject: str) -> str:
    return f'label:"{label}" subject:"{subject}"'


def cathay_transfer_scope(sender: str, subject: str) -> str:
    return f'from:{sender} subject:"{subject}"'


# ---------------------------------------------------------------------------
# MIME helpers
# ---------------------------------------------------------------------------


def _header_to_str(value: object) -> str:
    if value is None:
        return ""
    parts: list[str] = []
    for part, charset in decode_header(str(value)):
        if isinstance(part, bytes):
            parts.append(part.decode(charset or "utf-8", errors="replace"))
        else:
            parts.append(part)
    return "".join(parts)


def _sent_at(msg: email.message.Message) -> datetime | None:
    raw = msg.get("Date")
    if not raw:
        return None
    try:
        return parsedate_to_datetime(str(raw))
    except (TypeError, ValueError):
        return None


def _bodies(msg: email.message.Message) -> tuple[str, str]:
    """Return ``(html, plain)`` from the first non-attachment parts of each type."""

    html = ""
    plain = ""
    parts = msg.walk() if msg.is_multipart() else [msg]
    for part in parts:
        if "attachment" in str(part.get("Content-Disposition", "")):
            continue
        ctype = part.get_content_type()
        if ctype not in ("text/html", "text/plain"):
            continue
        payload = part.get_payload(decode=True)
        if not isinstance(payload, bytes):
            continue
        text = payload.decode(part.get_content_charset() or "utf-8", errors="replace")
        if ctype == "text/html" and not html:
            html = text
        elif ctype == "text/plain" and not plain:
            plain = text
    return html, plain


def message_from_bytes(raw: bytes, message_id: str) -> RawMessage:
    msg = email.message_from_bytes(raw)
    html, plain = _bodies(msg)
    return RawMessage(
        id=message_id,
        subject=_header_to_str(msg.get("Subject")),
        sent_at=_sent_at(msg),
        html_body=html,
        plain_body=plain,
    )


# ---------------------------------------------------------------------------
# Gmail over IMAP
# ---------------------------------------------------------------------------


class GmailImapSource:
    """Read-only Gmail access through IMAP with an app password."""

    def __init__(
        self, user: str, password: str, *, host: str = "imap.gmail.com", port: int = 993
    ) -> None:
        self.user = user
        self.password = password
        self.host = host
        self.port = port
        self._conn: imaplib.IMAP4_SSL | None = None

    def __enter__(self) -> GmailImapSource:
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def connect(self) -> None:
        try:
            conn = imaplib.IMAP4_SSL(self.host, self.port)
            conn.login(self.user, self.password)
            typ, _ = conn.select(ALL_MAIL, readonly=True)
        except imaplib.IMAP4.error as e:
            raise MailboxError(f"IMAP login/select failed for {self.user}: {e}") from e
        except OSError as e:
            raise MailboxError(f"Cannot connect to {self.host}:{self.port}: {e}") from e
        if typ != "OK":
            raise MailboxError(f"Cannot open {ALL_MAIL} for {self.user}")
        self._conn = conn

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.logout()
        except (imaplib.IMAP4.error, OSError):
            logger.debug("IMAP logout failed", exc_info=True)
        self._conn = None

    def search(self, query: str, max_results: int) -> list[RawMessage]:
        if self._conn is None:
            raise MailboxError("GmailImapSource.search() called before connect()")
        conn = self._conn
        # Non-ASCII search terms have to travel as a UTF-8 literal.
        conn.literal = query.encode("utf-8")
        try:
            typ, data = conn.uid("SEARCH", "CHARSET", "UTF-8", "X-GM-RAW")
        except imaplib.IMAP4.error as e:
            raise MailboxError(f"IMAP search failed for {query!r}: {e}") from e
        if typ != "OK":
            raise MailboxError(f"IMAP search failed for {query!r}: {typ}")

        uids: Sequence[bytes] = (data[0] or b"").split() if data else []
        if max_results > 0:
            uids = uids[-max_results:]
        logger.debug("query %r matched %d messages", query, len(uids))

        out: list[RawMessage] = []
        for uid in uids:
            fetched = self._fetch(uid)
            if fetched is not None:
                out.append(fetched)
        return out

    def _fetch(self, uid: bytes) -> RawMessage | None:
        assert self._conn is not None
        try:
            typ, data = self._conn.uid("FETCH", uid, "(X-GM-MSGID RFC822)")
        except imaplib.IMAP4.error as e:
            raise MailboxError(f"IMAP fetch failed for uid {uid!r}: {e}") from e
        if typ != "OK":
            return None
        for item in data:
            if not isinstance(item, tuple) or len(item) < 2:
                continue
            m = _MSGID_RE.search(item[0])
            if m is None:
                continue
            return message_from_bytes(item[1], format(int(m.group(1)), "x"))
        logger.warning("uid %r returned no X-GM-MSGID; skipped", uid)
        return None


__all__ = [
    "GmailImapSource",
    "MailboxError",
    "MessageSource",
    "build_query",
    "cathay_digest_scope",
    "cathay_transfer_scope",
    "message_from_bytes",
]
