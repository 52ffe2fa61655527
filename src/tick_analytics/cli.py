"""Command-line interface for tick analytics.

Usage:
    tick-analytics window data/ticks.csv --duration 10min --kind vwap
    tick-analytics bars data/ticks.csv --unit hour --multiplier 1
    tick-analytics slippage data/mytrades.csv data/ticks.csv
    tick-analytics markouts data/mytrades.csv data/ticks.csv --horizons 1min,5min
"""

from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
import typer

from .config import QueryConfig, load_config, with_overrides
from .engine import QueryEngine
from .ingest.reader import TickReader, read_executions

LOGGER = logging.getLogger(__name__)

app = typer.Typer(
    name="tick-analytics",
    help="Time-series primitives over tick data (bars, as-of joins, range windows)",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
):
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.INFO), format="%(levelname)s %(message)s")


def _engine(config: Optional[str], **overrides) -> QueryEngine:
    try:
        cfg: QueryConfig = with_overrides(load_config(config), **overrides)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    return QueryEngine(cfg)


def _emit(df: pd.DataFrame, output: Optional[str]) -> None:
    if output:
        df.to_csv(output, index=False)
        typer.echo(f"Wrote {len(df):,} rows to {output}")
    elif df.empty:
        typer.echo("No rows.")
    else:
        typer.echo(df.to_string(index=False))


def _filter_ticker(df: pd.DataFrame, ticker: Optional[str]) -> pd.DataFrame:
    if ticker is None:
        return df
    return df[df["ticker"] == ticker]


@app.command()
def window(
    ticks: str = typer.Argument(..., help="Tick CSV (ticker,date,time,price,volume)"),
    duration: Optional[str] = typer.Option(None, "--duration", "-d", help="Trailing window, e.g. 10min"),
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="sum, avg, count, vwap or twap"),
    ticker: Optional[str] = typer.Option(None, "--ticker", "-t", help="Restrict to one ticker"),
    drop_empty: bool = typer.Option(False, "--drop-empty", help="Omit rows whose window has no value"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write CSV instead of printing"),
):
    """Trailing range-window aggregate for every tick."""
    engine = _engine(config, window_duration=duration, window_kind=kind)
    df = _filter_ticker(engine.load_ticks(ticks), ticker)
    result = engine.rolling_frame(df)
    if drop_empty and not result.empty:
        result = result[result["aggregate"].notna()]
    _emit(result, output)


@app.command()
def bars(
    ticks: str = typer.Argument(..., help="Tick CSV (ticker,date,time,price,volume)"),
    unit: Optional[str] = typer.Option(None, "--unit", "-u", help="hour, day, week, month, quarter or year"),
    multiplier: Optional[int] = typer.Option(None, "--multiplier", "-m", help="Units per bucket"),
    anchor: str = typer.Option("start", "--anchor", help="Label buckets by 'start' or 'end'"),
    ticker: Optional[str] = typer.Option(None, "--ticker", "-t", help="Restrict to one ticker"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write CSV instead of printing"),
):
    """OHLCV + VWAP bars per fixed interval."""
    engine = _engine(config, bucket_unit=unit, bucket_multiplier=multiplier)
    df = _filter_ticker(engine.load_ticks(ticks), ticker)
    _emit(engine.bars(df, anchor=anchor), output)


@app.command()
def slippage(
    executions: str = typer.Argument(..., help="Execution CSV (ticker,trade_time,shares,price)"),
    ticks: str = typer.Argument(..., help="Tick CSV (ticker,date,time,price,volume)"),
    how: Optional[str] = typer.Option(None, "--how", help="'inner' drops unmatched executions, 'left' keeps them"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write CSV instead of printing"),
):
    """Slippage of each execution against the prevailing market trade."""
    engine = _engine(config, join_how=how)
    result = engine.slippage(read_executions(executions), engine.load_ticks(ticks))
    _emit(result, output)
    if not result.empty:
        typer.echo(f"\nTotal slippage cost: {result['slippage_cost'].sum():,.2f}")


@app.command()
def markouts(
    executions: str = typer.Argument(..., help="Execution CSV (ticker,trade_time,shares,price)"),
    ticks: str = typer.Argument(..., help="Tick CSV (ticker,date,time,price,volume)"),
    horizons: Optional[str] = typer.Option(None, "--horizons", help="Comma-separated offsets, e.g. 1min,5min"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write CSV instead of printing"),
):
    """Forward markouts of each execution at fixed horizons."""
    horizon_list = tuple(h.strip() for h in horizons.split(",")) if horizons else None
    engine = _engine(config, markout_horizons=horizon_list)
    _emit(engine.markouts(read_executions(executions), engine.load_ticks(ticks)), output)


@app.command()
def closes(
    ticks: str = typer.Argument(..., help="Tick CSV (ticker,date,time,price,volume)"),
    min_dates: Optional[int] = typer.Option(None, "--min-dates", help="Keep tickers with more trading dates than this"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write CSV instead of printing"),
):
    """Daily closing prices (last trade per ticker and date)."""
    engine = _engine(config, min_close_dates=min_dates)
    _emit(engine.closing_prices(engine.load_ticks(ticks)), output)


@app.command()
def info(
    ticks: str = typer.Argument(..., help="Tick CSV (ticker,date,time,price,volume)"),
):
    """Show information about a tick file."""
    stats = TickReader().get_file_stats(ticks)

    typer.echo(f"\nTicks in {stats['path']}:")
    typer.echo(f"  Rows: {stats['row_count']:,}")
    typer.echo(f"  Size: {stats['file_size_mb']:.1f} MB")
    typer.echo(f"  Tickers: {len(stats['tickers'])}")
    if stats["min_timestamp"] is not None:
        typer.echo(f"  From: {stats['min_timestamp']}")
        typer.echo(f"  To:   {stats['max_timestamp']}")


def main() -> None:
    """Entrypoint for the console script."""
    app()


if __name__ == "__main__":
    main()
