"""Timestamp reconstruction and interval bucketing."""

from .timestamps import (
    make_instant,
    decompose_instant,
    parse_instant,
    encode_instant,
    normalize_frame,
)
from .intervals import (
    BucketUnit,
    BucketSpec,
    parse_unit,
    bucket,
    bucket_start,
    bucket_end,
    bucket_series,
)

__all__ = [
    "make_instant",
    "decompose_instant",
    "parse_instant",
    "encode_instant",
    "normalize_frame",
    "BucketUnit",
    "BucketSpec",
    "parse_unit",
    "bucket",
    "bucket_start",
    "bucket_end",
    "bucket_series",
]
