"""Zi Wei Dou Shu chart computation."""

from ziwei.chart import (
    BirthRecord, Bureau, ChartSkeleton, Gender, Sector, Star, StarCategory, compute_chart,
)
from ziwei.errors import ChartError, InvalidInput, InvariantViolation

__all__ = [
    "BirthRecord",
    "Bureau",
    "ChartError",
    "ChartSkeleton",
    "Gender",
    "InvalidInput",
    "InvariantViolation",
    "Sector",
    "Star",
    "StarCategory",
    "compute_chart",
]
