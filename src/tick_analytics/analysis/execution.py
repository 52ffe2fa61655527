"""Execution quality: slippage against the prevailing trade and markouts.

Sign convention: positive ``shares`` is a buy, negative a sell.

- slippage per share = (exec_price - market_price) * sign(shares), so a
  positive number means the fill was worse than the market
- markout per share = (future_price - exec_price) * sign(shares), so a
  positive number means the market moved in the trade's favour
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
import pandas as pd

from ..joins.asof import AsOfJoiner
from ..types import events_from_frame

LOGGER = logging.getLogger(__name__)

DEFAULT_MARKOUT_HORIZONS = ("1min", "5min", "15min", "30min", "60min")


def _execution_events(executions: pd.DataFrame, key_col: str):
    ordered = executions.sort_values([key_col, "timestamp"], kind="mergesort")
    return events_from_frame(ordered, key_col=key_col, value_col="price", size_col="shares")


def _tick_events(ticks: pd.DataFrame, key_col: str, price_col: str):
    ordered = ticks.sort_values([key_col, "timestamp"], kind="mergesort")
    return events_from_frame(ordered, key_col=key_col, value_col=price_col, size_col=None)


def compute_slippage(
    executions: pd.DataFrame,
    ticks: pd.DataFrame,
    key_col: str = "ticker",
    price_col: str = "price",
    how: str = "inner",
) -> pd.DataFrame:
    """Compare each execution with the last market trade at or before it.

    Args:
        executions: ticker, timestamp, shares, price
        ticks: ticker, timestamp, ``price_col``
        key_col: Ticker column in both frames
        price_col: Market price column in ``ticks``
        how: "inner" drops executions with no prior trade, "left" keeps them

    Returns:
        DataFrame with ticker, timestamp, shares, price, market_time,
        market_price, slippage_per_share, slippage_cost, slippage_bps
    """
    joiner = AsOfJoiner(direction="backward", how=how)
    batch = joiner.join_by_key(
        _execution_events(executions, key_col),
        _tick_events(ticks, key_col, price_col),
    )
    batch.raise_first()

    records = []
    for m in batch.flatten():
        shares = m.left.size or 0.0
        market = m.value
        if market is None:
            per_share = cost = bps = np.nan
        else:
            diff = m.left.value - market
            per_share = diff * np.sign(shares)
            cost = diff * shares
            bps = per_share / market * 1e4 if market else np.nan
        records.append(
            {
                key_col: m.key,
                "timestamp": m.timestamp,
                "shares": shares,
                "price": m.left.value,
                "market_time": m.matched_at,
                "market_price": market if market is not None else np.nan,
                "slippage_per_share": per_share,
                "slippage_cost": cost,
                "slippage_bps": bps,
            }
        )
    LOGGER.info("Computed slippage for %d of %d executions", len(records), len(executions))
    return pd.DataFrame.from_records(
        records,
        columns=[
            key_col,
            "timestamp",
            "shares",
            "price",
            "market_time",
            "market_price",
            "slippage_per_share",
            "slippage_cost",
            "slippage_bps",
        ],
    )


def compute_markouts(
    executions: pd.DataFrame,
    ticks: pd.DataFrame,
    horizons: Iterable[str | pd.Timedelta] = DEFAULT_MARKOUT_HORIZONS,
    key_col: str = "ticker",
    price_col: str = "price",
) -> pd.DataFrame:
    """Price move after each execution at fixed horizons.

    For each horizon the first market trade at or after ``timestamp +
    horizon`` is used. Executions with no trade that late are dropped for
    that horizon.

    Returns:
        Long DataFrame with ticker, timestamp, horizon, shares, price,
        future_time, future_price, markout_per_share, markout_pnl
    """
    exec_events = _execution_events(executions, key_col)
    tick_events = _tick_events(ticks, key_col, price_col)

    records = []
    for horizon in horizons:
        offset = pd.Timedelta(horizon)
        joiner = AsOfJoiner(direction="forward", offset=offset)
        batch = joiner.join_by_key(exec_events, tick_events)
        batch.raise_first()

        for m in batch.flatten():
            shares = m.left.size or 0.0
            move = m.value - m.left.value
            records.append(
                {
                    key_col: m.key,
                    "timestamp": m.timestamp,
                    "horizon": offset,
                    "shares": shares,
                    "price": m.left.value,
                    "future_time": m.matched_at,
                    "future_price": m.value,
                    "markout_per_share": move * np.sign(shares),
                    "markout_pnl": move * shares,
                }
            )
    return pd.DataFrame.from_records(
        records,
        columns=[
            key_col,
            "timestamp",
            "horizon",
            "shares",
            "price",
            "future_time",
            "future_price",
            "markout_per_share",
            "markout_pnl",
        ],
    )
