"""
CLI entry point for the Gasless Relayer.
"""

import asyncio
from typing import Optional

import typer
import structlog
from web3 import Web3

from .config import get_settings
from .errors import ConfigurationError

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="gasless-relayer",
    help="NZDD Gasless Transaction Relayer",
    add_completion=False,
)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Override API host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override API port"),
) -> None:
    """
    Start the HTTP gateway and the background balance monitor.
    """
    import uvicorn

    settings = get_settings()
    try:
        settings.validate_for_startup()
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)

    uvicorn.run(
        "gasless_relayer.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.debug,
    )


@app.command()
def status() -> None:
    """
    Show the relayer address, balance and network (read-only).
    """
    from .relayer import GaslessRelayer

    settings = get_settings()
    try:
        relayer = GaslessRelayer(settings)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)

    async def _status() -> None:
        try:
            balance = await relayer.monitor.status()
            network = await relayer.evm.get_network()
            gas_price = await relayer.evm.get_gas_price()
        finally:
            await relayer.evm.close()

        typer.echo(f"Relayer:     {balance.address}")
        typer.echo(f"Network:     {network.name} (chain {network.chain_id})")
        typer.echo(f"Balance:     {balance.balance_eth} ETH")
        typer.echo(f"Threshold:   {balance.threshold_eth} ETH")
        typer.echo(f"Gas price:   {Web3.from_wei(gas_price, 'gwei')} gwei")
        if balance.sufficient:
            typer.echo("✓ Balance sufficient")
        else:
            typer.echo(f"✗ Balance low, fund at {settings.funding_url}")

    asyncio.run(_status())


@app.command()
def version() -> None:
    """Show the relayer version."""
    from gasless_relayer import __version__
    typer.echo(f"gasless-relayer v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
