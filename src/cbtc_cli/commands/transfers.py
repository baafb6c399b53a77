"""Transfer commands."""
from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Optional

import click

from cbtc_sdk import distribute as distribute_op
from cbtc_sdk import load_recipients_csv, send as send_op
from cbtc_sdk.models.errors import ValidationError

from ..runtime import (
    JsonlResultWriter,
    ProgressPrinter,
    console,
    exit_on_failures,
    open_session,
    render_transfers,
    require_party,
    run,
    settings_from,
)


@click.command()
@click.argument("receiver")
@click.argument("amount")
@click.option("--reference", help="Idempotency reference stored in the transfer metadata")
@click.pass_context
def send(ctx, receiver: str, amount: str, reference: Optional[str]):
    """Send AMOUNT to RECEIVER."""
    settings = settings_from(ctx)
    party = require_party(settings)

    async def _send():
        async with open_session(ctx) as (client, session):
            return await send_op(
                client,
                session,
                sender=party,
                admin=settings.decentralized_party_id,
                receiver=receiver,
                amount=amount,
                reference=reference,
                instrument_id=settings.instrument_id,
                execute_before=timedelta(hours=settings.execute_before_hours),
                context_execute_before=timedelta(hours=settings.context_execute_before_hours),
            )

    result = run(ctx, _send())
    console.print("\n[green]✓ Transfer submitted[/green]")
    console.print(f"  Update: [cyan]{result.update_id}[/cyan]")
    console.print(f"  Instruction: [cyan]{result.instruction_id}[/cyan]")
    console.print(f"  Change holdings: {len(result.change_ids)}")


@click.command()
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--reference-base", help="Derive a per-recipient reference from this base")
@click.option(
    "--results-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Append one JSON line per result to this file",
)
@click.pass_context
def distribute(ctx, csv_file: Path, reference_base: Optional[str], results_file: Optional[Path]):
    """Pay every receiver,amount row of CSV_FILE in one chain."""
    settings = settings_from(ctx)
    party = require_party(settings)

    try:
        recipients = load_recipients_csv(csv_file)
    except ValidationError as e:
        raise click.BadParameter(e.message, param_hint="CSV_FILE") from e

    writer = JsonlResultWriter(results_file) if results_file else None
    observer = ProgressPrinter(len(recipients), inner=writer)

    async def _distribute():
        async with open_session(ctx) as (client, session):
            return await distribute_op(
                client,
                session,
                sender=party,
                admin=settings.decentralized_party_id,
                recipients=recipients,
                instrument_id=settings.instrument_id,
                execute_before=timedelta(hours=settings.execute_before_hours),
                context_execute_before=timedelta(hours=settings.context_execute_before_hours),
                reference_base=reference_base,
                observer=observer,
            )

    console.print(f"Distributing to {len(recipients)} recipient(s)...\n")
    outcome = run(ctx, _distribute())
    render_transfers(outcome, "Distribution")
    exit_on_failures(ctx, outcome)
