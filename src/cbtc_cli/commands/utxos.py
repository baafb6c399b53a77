"""Holding maintenance commands: consolidate and split."""
from __future__ import annotations

from typing import Optional

import click

from cbtc_sdk import check_and_consolidate, split_holdings
from cbtc_sdk.models.errors import CbtcError

from ..runtime import console, open_session, render_transfers, require_party, run, settings_from


@click.command()
@click.option("--threshold", type=int, help="Only consolidate at or above this many holdings")
@click.pass_context
def consolidate(ctx, threshold: Optional[int]):
    """Merge holdings into one."""
    settings = settings_from(ctx)
    party = require_party(settings)
    threshold = settings.consolidation_threshold if threshold is None else threshold

    async def _consolidate():
        async with open_session(ctx) as (client, session):
            return await check_and_consolidate(
                client,
                session,
                party,
                settings.decentralized_party_id,
                threshold=threshold,
                instrument_id=settings.instrument_id,
            )

    result = run(ctx, _consolidate())
    if not result.consolidated:
        console.print(
            f"[dim]{result.holdings_before} holding(s), below threshold {threshold}; nothing to do[/dim]"
        )
        return

    console.print(
        f"[green]✓ Consolidated {result.holdings_before} holding(s) into {result.holdings_after}[/green]"
    )
    for cid in result.holding_ids:
        console.print(f"  [cyan]{cid}[/cyan]")


@click.command()
@click.argument("amounts", nargs=-1, required=True)
@click.pass_context
def split(ctx, amounts: tuple[str, ...]):
    """Split off one holding per AMOUNT."""
    settings = settings_from(ctx)
    party = require_party(settings)

    async def _split():
        async with open_session(ctx) as (client, session):
            try:
                return await split_holdings(
                    client,
                    session,
                    party,
                    settings.decentralized_party_id,
                    list(amounts),
                    instrument_id=settings.instrument_id,
                )
            except CbtcError as e:
                completed = e.details.get("completed_outputs")
                if completed:
                    console.print(f"[yellow]Completed before the failure: {', '.join(completed)}[/yellow]")
                raise

    result = run(ctx, _split())
    render_transfers(result.outcome, "Split")
    console.print(f"\nOutputs: {', '.join(result.output_holding_ids)}")
    console.print(f"Change: {', '.join(result.change_holding_ids) or '-'}")
