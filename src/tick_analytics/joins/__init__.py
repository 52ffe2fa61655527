"""As-of joins."""

from .asof import AsOfJoiner, asof_join, asof_join_frames

__all__ = [
    "AsOfJoiner",
    "asof_join",
    "asof_join_frames",
]
