"""Analysis helpers built on the time-series primitives.

Bars, point-in-time lookups, lead/lag deltas and execution-quality metrics
(slippage, markouts). Output is handed off as typed records or DataFrames.
"""

from .bars import BucketAggregator, BucketBar
from .execution import DEFAULT_MARKOUT_HORIZONS, compute_markouts, compute_slippage
from .lookup import LagDelta, lag_deltas, value_as_of
