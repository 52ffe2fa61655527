"""Daily closing prices derived from tick history.

The close for a (ticker, date) is the last priced trade of that date.
Tickers observed on ``min_dates`` or fewer distinct dates are excluded so
the reference series only covers names with a usable history.
"""

from __future__ import annotations

import pandas as pd


def closing_prices_from_ticks(
    df: pd.DataFrame,
    min_dates: int = 100,
    key_col: str = "ticker",
    trades_only: bool = True,
) -> pd.DataFrame:
    """Build the reference close series from normalized ticks.

    Args:
        df: Tick rows with ticker, date, time, price and timestamp columns
        min_dates: Keep tickers with strictly more distinct dates than this
        key_col: Ticker column
        trades_only: When ``msg_type`` / ``security_type`` columns exist, keep
            trade messages (msg_type 0) on equities (security_type 1)

    Returns:
        DataFrame with ticker, date, time, timestamp, closing_price ordered by
        date descending
    """
    ticks = df[df["price"].notna()]
    if trades_only:
        if "msg_type" in ticks.columns:
            ticks = ticks[ticks["msg_type"] == 0]
        if "security_type" in ticks.columns:
            ticks = ticks[ticks["security_type"] == 1]

    date_count = ticks.groupby(key_col)["date"].transform("nunique")
    ticks = ticks[date_count > min_dates]

    if ticks.empty:
        return pd.DataFrame(columns=[key_col, "date", "time", "timestamp", "closing_price"])

    last = (
        ticks.sort_values([key_col, "date", "time"], kind="mergesort")
        .groupby([key_col, "date"], sort=False)
        .tail(1)
    )
    out = last[[key_col, "date", "time", "timestamp", "price"]].rename(columns={"price": "closing_price"})
    return out.sort_values(["date", key_col], ascending=[False, True], kind="mergesort").reset_index(drop=True)
