"""DuckDB storage for analysis snapshots."""

from __future__ import annotations

import time
from pathlib import Path

import duckdb
import pandas as pd

from walletscope.config import get_settings
from walletscope.models.schema import AnalysisReport

WALLET_PNL_COLUMNS = [
    "wallet", "mode", "timeframe", "mint", "symbol", "trades",
    "avg_entry", "avg_exit", "volume", "remaining", "cost_basis",
    "realized_pnl", "unrealized_value", "pnl", "roi", "last_updated",
]

RELATED_WALLET_COLUMNS = [
    "wallet", "address", "interactions", "native_transferred", "risk_score",
    "risk_level", "first_seen", "last_seen", "pnl", "last_updated",
]


def get_connection(path: Path | None = None) -> duckdb.DuckDBPyConnection:
    """Get a DuckDB connection, creating tables if needed."""
    if path is None:
        path = get_settings().duckdb_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = duckdb.connect(str(path))
    _create_tables(conn)
    return conn


def _create_tables(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS wallet_pnl (
            wallet VARCHAR NOT NULL,
            mode VARCHAR NOT NULL,
            timeframe VARCHAR NOT NULL,
            mint VARCHAR NOT NULL,
            symbol VARCHAR,
            trades INTEGER DEFAULT 0,
            avg_entry DOUBLE DEFAULT 0.0,
            avg_exit DOUBLE DEFAULT 0.0,
            volume DOUBLE DEFAULT 0.0,
            remaining DOUBLE DEFAULT 0.0,
            cost_basis DOUBLE DEFAULT 0.0,
            realized_pnl DOUBLE DEFAULT 0.0,
            unrealized_value DOUBLE DEFAULT 0.0,
            pnl DOUBLE DEFAULT 0.0,
            roi DOUBLE DEFAULT 0.0,
            last_updated BIGINT NOT NULL,
            PRIMARY KEY (wallet, mode, timeframe, mint)
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS related_wallets (
            wallet VARCHAR NOT NULL,
            address VARCHAR NOT NULL,
            interactions INTEGER NOT NULL,
            native_transferred DOUBLE DEFAULT 0.0,
            risk_score INTEGER NOT NULL,
            risk_level VARCHAR NOT NULL,
            first_seen BIGINT DEFAULT 0,
            last_seen BIGINT DEFAULT 0,
            pnl DOUBLE,
            last_updated BIGINT NOT NULL,
            PRIMARY KEY (wallet, address)
        )
    """)


def save_report(conn: duckdb.DuckDBPyConnection, report: AnalysisReport) -> int:
    """Upsert a report's positions and related wallets. Returns rows written."""
    now = int(time.time())

    pnl_rows = [
        {
            "wallet": report.wallet,
            "mode": report.mode.value,
            "timeframe": report.timeframe.value,
            "last_updated": now,
            **p.model_dump(include=set(WALLET_PNL_COLUMNS)),
        }
        for p in report.positions
    ]
    related_rows = [
        {
            "wallet": report.wallet,
            "last_updated": now,
            **w.model_dump(include=set(RELATED_WALLET_COLUMNS), mode="json"),
        }
        for w in report.related_wallets
    ]

    written = 0
    if pnl_rows:
        pnl_df = pd.DataFrame(pnl_rows)[WALLET_PNL_COLUMNS]
        conn.execute("INSERT OR REPLACE INTO wallet_pnl SELECT * FROM pnl_df")
        written += len(pnl_df)
    if related_rows:
        related_df = pd.DataFrame(related_rows)[RELATED_WALLET_COLUMNS]
        related_df["pnl"] = related_df["pnl"].astype("float64")
        conn.execute("INSERT OR REPLACE INTO related_wallets SELECT * FROM related_df")
        written += len(related_df)
    return written


def get_wallet_pnl(
    conn: duckdb.DuckDBPyConnection,
    wallet: str,
    mode: str | None = None,
) -> pd.DataFrame:
    query = "SELECT * FROM wallet_pnl WHERE wallet = ?"
    params: list = [wallet]
    if mode:
        query += " AND mode = ?"
        params.append(mode)
    query += " ORDER BY pnl DESC"
    return conn.execute(query, params).fetchdf()


def get_related_wallets(conn: duckdb.DuckDBPyConnection, wallet: str) -> pd.DataFrame:
    return conn.execute(
        "SELECT * FROM related_wallets WHERE wallet = ? ORDER BY risk_score DESC",
        [wallet],
    ).fetchdf()
