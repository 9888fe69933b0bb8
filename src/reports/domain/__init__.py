"""
Domain module initialization.
"""
from .entities import (
    NO_MINOR,
    ReportCategory,
    ReportTypeCodes,
    RoadIdentity,
    NormalizedBatch,
    ResolvedBatch,
    CongestionSeries
)
from .protocols import ReportSource
from .repositories import SeriesRepository
