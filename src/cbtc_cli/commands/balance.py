"""Balance command."""
from __future__ import annotations

import click
from rich.table import Table

from cbtc_sdk.holdings import holding_amount, list_holdings, total_balance

from ..runtime import console, open_session, require_party, run, settings_from


@click.command()
@click.pass_context
def balance(ctx):
    """Show unlocked CBTC holdings and their total."""
    settings = settings_from(ctx)
    party = require_party(settings)

    async def _balance():
        async with open_session(ctx) as (client, session):
            token = await session.ensure_fresh()
            return await list_holdings(client.ledger, party, token, settings.instrument_id)

    holdings = run(ctx, _balance())

    if not holdings:
        console.print("[dim]No holdings found[/dim]")
        return

    table = Table(title=f"{settings.instrument_id} Holdings")
    table.add_column("Contract", style="cyan")
    table.add_column("Amount", style="yellow", justify="right")
    for h in holdings:
        amount = holding_amount(h)
        table.add_row(h.contract_id, str(amount) if amount is not None else "?")

    console.print(table)
    console.print(f"\nTotal: [bold]{total_balance(holdings)}[/bold] across {len(holdings)} holding(s)")
