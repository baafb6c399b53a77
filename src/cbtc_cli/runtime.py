"""Shared plumbing for CLI commands: sessions, rendering and result files."""
from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Optional, TypeVar

import click
from rich.console import Console
from rich.table import Table

from cbtc_sdk import CbtcClient, CbtcError, CbtcSettings, CredentialSession
from cbtc_sdk.logging_utils import short_id
from cbtc_sdk.results import BatchOutcome

console = Console()

T = TypeVar("T")


def settings_from(ctx: click.Context) -> CbtcSettings:
    return ctx.obj["settings"]


def require_party(settings: CbtcSettings) -> str:
    if not settings.party_id:
        raise click.UsageError("CBTC_PARTY_ID is not configured")
    return settings.party_id


@asynccontextmanager
async def open_session(ctx: click.Context) -> AsyncIterator[tuple[CbtcClient, CredentialSession]]:
    """Client plus a logged-in credential session for the configured party."""
    settings = settings_from(ctx)
    async with CbtcClient.from_settings(settings, transport=ctx.obj.get("transport")) as client:
        session = CredentialSession(
            client.identity,
            settings.grant(),
            margin=settings.token_refresh_margin_seconds,
        )
        await session.login()
        yield client, session


def run(ctx: click.Context, coro: Awaitable[T]) -> T:
    """Run a coroutine, turning SDK errors into a red message and exit code 1."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except CbtcError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        if ctx.obj.get("verbose") and e.details:
            console.print(f"[dim]{json.dumps(e.details, default=str)}[/dim]")
        ctx.exit(1)


class JsonlResultWriter:
    """Observer appending one JSON line per result to a file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def on_result(self, result: Any) -> None:
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(result.to_dict(), default=str) + "\n")


class ProgressPrinter:
    """Observer printing one line per result as it arrives."""

    def __init__(self, total: int, inner: Optional[Any] = None) -> None:
        self.total = total
        self.inner = inner

    def on_result(self, result: Any) -> None:
        mark = "[green]✓[/green]" if result.success else "[red]✗[/red]"
        target = getattr(result, "receiver", None) or short_id(getattr(result, "contract_id", None))
        line = f"{mark} {result.index + 1}/{self.total} {target}"
        if result.error is not None:
            line += f" [dim]{result.error.message}[/dim]"
        console.print(line)
        if self.inner is not None:
            self.inner.on_result(result)


def render_transfers(outcome: BatchOutcome, title: str) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Receiver", style="cyan")
    table.add_column("Amount", style="yellow", justify="right")
    table.add_column("Status")
    table.add_column("Update / Error")

    for r in outcome.results:
        status = "[green]sent[/green]" if r.success else "[red]failed[/red]"
        detail = r.update_id if r.success else (r.error.message if r.error else "")
        table.add_row(str(r.index + 1), short_id(r.receiver), r.amount, status, detail or "")

    console.print(table)
    render_summary(outcome)


def render_offers(outcome: BatchOutcome, title: str) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Contract", style="cyan")
    table.add_column("Counterparty")
    table.add_column("Amount", style="yellow", justify="right")
    table.add_column("Status")

    for r in outcome.results:
        status = "[green]done[/green]" if r.success else f"[red]failed[/red] {r.error.message if r.error else ''}"
        table.add_row(
            str(r.index + 1),
            short_id(r.contract_id),
            short_id(r.counterparty),
            r.amount or "",
            status,
        )

    console.print(table)
    render_summary(outcome)


def render_summary(outcome: BatchOutcome) -> None:
    console.print(
        f"\nSucceeded: [green]{outcome.success_count}[/green]  "
        f"Failed: [red]{outcome.fail_count}[/red]  "
        f"Total: {outcome.total}"
    )


def exit_on_failures(ctx: click.Context, outcome: BatchOutcome) -> None:
    if outcome.fail_count > 0:
        ctx.exit(1)
