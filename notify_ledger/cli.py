"""CLI for the ``notify_ledger`` package.

A Typer app with one command per public API function. Environment variables
are loaded from a local ``.env`` with ``python-dotenv`` (without overriding
already-set values) before settings are read. Business logic lives in
``notify_ledger.api``.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .config import ConfigError, Settings, load_settings
from .logging_setup import configure_logging


def _settings_or_exit() -> Settings:
    try:
        return load_settings()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise typer.Exit(1) from e


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Ingest bank notification e-mails into the transaction ledger. "
        "Loads configuration from a local .env before running."
    ),
)


@app.command("ingest")
def ingest_cmd(
    *,
    days: int | None = typer.Option(
        None, min=1, help="Window length in days (defaults to WINDOW_DAYS, 15)."
    ),
    dry_run: bool = typer.Option(False, help="Parse and dedup without writing rows."),
) -> None:
    """Append new transactions from the last N days of notifications."""

    # Deferred imports keep `--help` fast
    from .api import ingest
    from .locking import advisory_lock
    from .mailbox import GmailImapSource, MailboxError

    settings = _settings_or_exit()
    if not settings.gmail_user or not settings.gmail_app_password:
        print("Error: GMAIL_USER and GMAIL_APP_PASSWORD must be set.", file=sys.stderr)
        raise typer.Exit(1)

    with advisory_lock(settings.lock_path, settings.lock_timeout_seconds):
        try:
            with GmailImapSource(
                settings.gmail_user, settings.gmail_app_password, host=settings.imap_host
            ) as mailbox:
                result = ingest(settings, mailbox, days=days, dry_run=dry_run)
        except MailboxError as e:
            print(f"Error: mailbox failure: {e}", file=sys.stderr)
            raise typer.Exit(1) from e

    typer.echo(f"inserted={len(result.rows)}")


# Module-level option object to satisfy ruff B008 (no calls in parameter
# defaults).
OUT_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--out",
    help="Destination CSV file.",
    dir_okay=False,
    file_okay=True,
    writable=True,
)


@app.command("export")
def export_cmd(out: Annotated[Path, OUT_PATH_OPTION]) -> None:
    """Write the ledger as CSV with the configured header labels."""

    from .api import export_csv

    settings = _settings_or_exit()
    n = export_csv(settings, out)
    typer.echo(f"exported={n}")


@app.command("backfill-expense")
def backfill_expense_cmd() -> None:
    """One-off: mark card rows without a classification as expense."""

    from .api import backfill_expense

    settings = _settings_or_exit()
    n = backfill_expense(settings)
    typer.echo(f"updated={n}")


@app.callback()
def _root(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None, help="Log level (defaults to NOTIFY_LEDGER_LOG_LEVEL or INFO)."
    ),
) -> None:
    """Load ``.env`` from the current directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level, command=ctx.invoked_subcommand or "-")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
