"""Combinators - compose several Tasks into one aggregate Task."""

from .ops import parallel, race, series

__all__ = [
    "race",
    "series",
    "parallel",
]
