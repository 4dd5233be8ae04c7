"""Click CLI: analyze, related, history, serve."""

from __future__ import annotations

import asyncio
import json
import logging

import click
import pandas as pd

from walletscope.errors import WalletscopeError
from walletscope.models.schema import PnlMode, Timeframe


def _fail(e: WalletscopeError) -> None:
    raise click.ClickException(f"{e.message} (status {e.status_code})")


@click.group()
@click.version_option(version="1.0.0")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """Walletscope - Solana wallet P&L and related-wallet analytics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("wallet")
@click.option("--timeframe", default="all", type=click.Choice([t.value for t in Timeframe]))
@click.option("--mode", default="strict", type=click.Choice([m.value for m in PnlMode]))
@click.option("--api-key", default=None, help="Helius API key (overrides HELIUS_API_KEY)")
@click.option("--enrich", is_flag=True, help="Compute each related wallet's own P&L")
@click.option("--save", is_flag=True, help="Store the result in DuckDB")
@click.option("--json", "as_json", is_flag=True, help="Print the raw report as JSON")
def analyze(wallet: str, timeframe: str, mode: str, api_key: str | None, enrich: bool, save: bool, as_json: bool):
    """Compute P&L and related wallets for WALLET."""
    from walletscope.analysis import analyze_wallet
    from walletscope.scoring.pnl import positions_frame
    from walletscope.tokens.pricing import JupiterPriceSource

    price_source = JupiterPriceSource() if mode == PnlMode.SIMPLE.value else None
    try:
        report = asyncio.run(analyze_wallet(
            wallet, timeframe=timeframe, mode=mode, api_key=api_key,
            price_source=price_source, enrich_related=enrich,
        ))
    except WalletscopeError as e:
        _fail(e)

    if save:
        from walletscope.storage.database import get_connection, save_report

        conn = get_connection()
        n = save_report(conn, report)
        conn.close()
        click.echo(f"Saved {n} rows to DuckDB.", err=True)

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json", by_alias=True), indent=2))
        return

    if report.synthetic:
        click.echo("NOTE: showing synthetic demo data, the live source was unavailable.")
    click.echo(f"Wallet {report.wallet} ({report.mode.value} mode, {report.timeframe.value})")
    if report.balance is not None:
        click.echo(f"Balance: {report.balance:.4f} SOL")
    click.echo(f"Total P&L: {report.total_pnl:+.2f}")
    click.echo(f"Win rate: {report.win_rate:.1f}% ({report.winners}W / {report.losers}L)")
    click.echo(f"Trades: {report.total_trades}, volume {report.total_volume:.2f}")
    if report.best_performer:
        click.echo(f"Best performer: {report.best_performer.symbol} ({report.best_performer.pnl:+.2f})")

    df = positions_frame(report)
    if not df.empty:
        click.echo("\n--- Positions ---")
        click.echo(df[["symbol", "trades", "avg_entry", "avg_exit", "volume", "pnl", "roi"]].to_string(index=False))

    _echo_related(report.related_wallets)


@cli.command()
@click.argument("wallet")
@click.option("--api-key", default=None, help="Helius API key (overrides HELIUS_API_KEY)")
def related(wallet: str, api_key: str | None):
    """Detect wallets that interact suspiciously often with WALLET."""
    from walletscope.analysis import build_source, validate_wallet_address
    from walletscope.chain.source import fetch_history
    from walletscope.config import get_settings
    from walletscope.scoring.related import detect_related_wallets

    settings = get_settings()
    try:
        wallet = validate_wallet_address(wallet)
        source = build_source(settings, api_key=api_key)
        transactions = asyncio.run(fetch_history(
            source, wallet, page_limit=settings.page_limit, max_pages=settings.max_pages,
        ))
    except WalletscopeError as e:
        _fail(e)

    _echo_related(detect_related_wallets(transactions, wallet, limit=settings.related_wallet_limit))


@cli.command()
@click.argument("wallet")
@click.option("--mode", default=None, type=click.Choice([m.value for m in PnlMode]))
def history(wallet: str, mode: str | None):
    """Show stored P&L snapshots for WALLET."""
    from walletscope.storage.database import get_connection, get_wallet_pnl

    conn = get_connection()
    df = get_wallet_pnl(conn, wallet, mode=mode)
    conn.close()
    if df.empty:
        click.echo(f"No stored results for {wallet}. Run `walletscope analyze {wallet} --save` first.")
        return
    click.echo(df.to_string(index=False))


@cli.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=8000)
def serve(host: str, port: int):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("walletscope.api:app", host=host, port=port)


def _echo_related(wallets) -> None:
    click.echo(f"\n--- Related wallets ({len(wallets)} detected) ---")
    if not wallets:
        click.echo("No suspicious related wallets detected")
        return
    df = pd.DataFrame([w.model_dump(mode="json") for w in wallets])
    cols = ["address", "interactions", "native_transferred", "risk_score", "risk_level", "pnl"]
    click.echo(df[[c for c in cols if c in df.columns]].to_string(index=False))


if __name__ == "__main__":
    cli()
