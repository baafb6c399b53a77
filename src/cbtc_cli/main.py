"""
CBTC CLI main entry point.

Usage:
    cbtc [OPTIONS] COMMAND [ARGS]...
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from cbtc_sdk import CbtcSettings
from cbtc_sdk.logging_utils import configure_logging, mask_value

from .commands import balance, offers, transfers, utxos

console = Console()


@click.group()
@click.version_option(package_name="cbtc-sdk-python", message="%(prog)s %(version)s")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Read CBTC_* settings from this file instead of ./.env",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx, env_file: Optional[Path], verbose: bool, json_logs: bool):
    """CBTC CLI - chained CBTC transfers on Canton."""
    ctx.ensure_object(dict)

    settings = CbtcSettings(_env_file=env_file) if env_file else CbtcSettings()
    level = logging.DEBUG if verbose else settings.log_level
    configure_logging(level=level, json_format=json_logs or settings.log_json)

    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose


@cli.command()
@click.pass_context
def status(ctx):
    """Show current configuration."""
    settings: CbtcSettings = ctx.obj["settings"]

    console.print("\n[bold blue]CBTC CLI Status[/bold blue]\n")
    console.print(f"Environment: [cyan]{settings.environment}[/cyan]")
    console.print(f"Ledger: [cyan]{settings.ledger_host}[/cyan]")
    console.print(f"Registry: [cyan]{settings.registry_url}[/cyan]")
    console.print(f"Token URL: [cyan]{settings.token_url}[/cyan]")
    console.print(f"Party: [cyan]{settings.party_id or 'Not configured'}[/cyan]")
    console.print(f"Admin: [cyan]{settings.decentralized_party_id}[/cyan]")

    if settings.keycloak_client_secret:
        console.print(f"Client secret: [green]{mask_value(settings.keycloak_client_secret)}[/green]")
    elif settings.keycloak_password:
        console.print(f"User: [green]{settings.keycloak_username}[/green] (password set)")
    else:
        console.print("Credentials: [yellow]Not configured[/yellow]")

    console.print()


cli.add_command(balance.balance)
cli.add_command(transfers.send)
cli.add_command(transfers.distribute)
cli.add_command(utxos.consolidate)
cli.add_command(utxos.split)
cli.add_command(offers.offers)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
