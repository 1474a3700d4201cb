"""Command line interface for afipgate."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer

from afipgate import AfipClient, load_config
from afipgate.errors import AfipGateError

app = typer.Typer(help="CLI for AFIP ticket authorization and web services")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to the YAML configuration file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """afipgate CLI entry point."""
    ctx.obj = {"config_path": config}
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


def _run(coro):
    try:
        return asyncio.run(coro)
    except AfipGateError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@app.command("ticket")
def ticket(
    ctx: typer.Context,
    service: str,
    refresh: bool = typer.Option(False, help="Request a new ticket even if one is stored"),
) -> None:
    """
    Obtain a ticket for SERVICE and show where it is stored.

    The token and sign are never printed.

    Example:
        afipgate ticket wsfe
        afipgate ticket wsfex --refresh
    """
    config = load_config(ctx.obj["config_path"])

    async def _ticket():
        async with AfipClient(config) as client:
            manager = client.authorization
            if refresh:
                return await manager.refresh(service)
            await manager.get_ticket(service)
            return await client.store.read(manager.key_for(service))

    issued = _run(_ticket())
    if issued is None:
        typer.secho("Ticket was not stored", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"{issued.key.name}\texpires {issued.expires_at.isoformat()}")


@app.command("status")
def status(ctx: typer.Context, service: str) -> None:
    """Show the health-check response of SERVICE (wsfe or wsfex)."""
    config = load_config(ctx.obj["config_path"])

    async def _status():
        async with AfipClient(config) as client:
            return await client.adapter(service).get_server_status()

    try:
        result = _run(_status())
    except KeyError as exc:
        typer.secho(str(exc.args[0]), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    for name, value in (result or {}).items():
        typer.echo(f"{name}\t{value}")


@app.command("last-voucher")
def last_voucher(
    ctx: typer.Context,
    sales_point: int = typer.Option(..., "--sales-point", help="Sales point number"),
    voucher_type: int = typer.Option(..., "--type", help="Voucher type code"),
    export: bool = typer.Option(False, "--export", help="Use export billing (wsfex)"),
) -> None:
    """Print the last authorized voucher number."""
    config = load_config(ctx.obj["config_path"])

    async def _last():
        async with AfipClient(config) as client:
            adapter = client.export_electronic_billing if export else client.electronic_billing
            return await adapter.get_last_voucher(sales_point, voucher_type)

    typer.echo(str(_run(_last())))


if __name__ == "__main__":  # pragma: no cover
    app()
