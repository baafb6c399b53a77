"""Pending offer commands."""
from __future__ import annotations

from typing import Optional

import click
from rich.table import Table

from cbtc_sdk import accept_all, list_incoming_offers, list_outgoing_offers, withdraw_all
from cbtc_sdk.logging_utils import short_id

from ..runtime import (
    console,
    exit_on_failures,
    open_session,
    render_offers,
    require_party,
    run,
    settings_from,
)


@click.group()
def offers():
    """Pending transfer offer commands."""
    pass


def _list(ctx, incoming: bool):
    settings = settings_from(ctx)
    party = require_party(settings)
    lister = list_incoming_offers if incoming else list_outgoing_offers

    async def _fetch():
        async with open_session(ctx) as (client, session):
            token = await session.ensure_fresh()
            return await lister(client.ledger, party, token, settings.instrument_id)

    pending = run(ctx, _fetch())
    if not pending:
        console.print(f"[dim]No pending {'incoming' if incoming else 'outgoing'} offers[/dim]")
        return

    table = Table(title="Incoming Offers" if incoming else "Outgoing Offers")
    table.add_column("Contract", style="cyan")
    table.add_column("From" if incoming else "To")
    table.add_column("Amount", style="yellow", justify="right")
    table.add_column("Expires")
    for offer in pending:
        table.add_row(
            short_id(offer.contract_id),
            short_id(offer.sender if incoming else offer.receiver),
            offer.amount or "",
            offer.execute_before or "",
        )
    console.print(table)
    console.print(f"\nTotal: {len(pending)} offer(s)")


@offers.command()
@click.pass_context
def incoming(ctx):
    """List offers waiting for you to accept."""
    _list(ctx, incoming=True)


@offers.command()
@click.pass_context
def outgoing(ctx):
    """List offers you sent that are not yet accepted."""
    _list(ctx, incoming=False)


def _settle(ctx, accept: bool, batch_size: Optional[int]):
    settings = settings_from(ctx)
    party = require_party(settings)
    operation = accept_all if accept else withdraw_all
    size = batch_size or settings.accept_batch_size

    async def _run():
        async with open_session(ctx) as (client, session):
            return await operation(
                client,
                session,
                party,
                settings.decentralized_party_id,
                batch_size=size,
                instrument_id=settings.instrument_id,
            )

    outcome = run(ctx, _run())
    if not outcome.results:
        console.print("[dim]No pending offers[/dim]")
        return
    render_offers(outcome, "Accepted" if accept else "Withdrawn")
    exit_on_failures(ctx, outcome)


@offers.command("accept-all")
@click.option("--batch-size", type=click.IntRange(min=1), help="Offers per transaction")
@click.pass_context
def accept_all_cmd(ctx, batch_size: Optional[int]):
    """Accept every pending incoming offer."""
    _settle(ctx, accept=True, batch_size=batch_size)


@offers.command("withdraw-all")
@click.option("--batch-size", type=click.IntRange(min=1), help="Offers per transaction")
@click.pass_context
def withdraw_all_cmd(ctx, batch_size: Optional[int]):
    """Withdraw every pending outgoing offer."""
    _settle(ctx, accept=False, batch_size=batch_size)
