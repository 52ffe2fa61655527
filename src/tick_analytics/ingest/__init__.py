"""Tick ingestion: CSV readers and reference series."""

from .reader import (
    TickReader,
    read_ticks,
    read_closing_prices,
    read_executions,
    series_by_key,
)
from .closing_prices import closing_prices_from_ticks

__all__ = [
    "TickReader",
    "read_ticks",
    "read_closing_prices",
    "read_executions",
    "series_by_key",
    "closing_prices_from_ticks",
]
