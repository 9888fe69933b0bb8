"""
Time series assembly: project resolved reports into the canonical
congestion series and restrict it to a reliable window.
"""
import logging
from datetime import datetime
from typing import Optional, Union

import pandas as pd

from ..domain.entities import CongestionSeries, ResolvedBatch
from ...common.logging import log_execution_time
from ...common.metrics import AuditCollector

logger = logging.getLogger(__name__)

TimeLike = Union[str, datetime, pd.Timestamp]


def to_utc(value: Optional[TimeLike]) -> Optional[datetime]:
    """Parses a window bound; naive values are taken as UTC."""
    if value is None:
        return None
    stamp = pd.Timestamp(value)
    stamp = stamp.tz_localize("UTC") if stamp.tzinfo is None else stamp.tz_convert("UTC")
    return stamp.to_pydatetime()


def bucketed_counts(series: CongestionSeries, bucket_width: str = "1h") -> pd.Series:
    """
    Number of reports per fixed-width bucket over the whole series span,
    empty buckets included. Used to pick a reliable analysis window.
    """
    frame = series.to_frame()
    if frame.empty:
        return pd.Series(dtype="int64", name="count", index=pd.DatetimeIndex([], tz="UTC", name="bucket_start"))
    counts = frame.set_index("report_time").resample(bucket_width).size()
    counts.index.name = "bucket_start"
    return counts.rename("count")


class TimeSeriesAssembler:
    """
    Third pipeline stage: ResolvedBatch -> CongestionSeries.
    """
    def __init__(self, start: Optional[TimeLike] = None, end: Optional[TimeLike] = None):
        self.start = to_utc(start)
        self.end = to_utc(end)
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError(f"Window end {self.end} must be after start {self.start}")

    @log_execution_time(logger, stage="assembler")
    def assemble(
        self,
        batch: ResolvedBatch,
        start: Optional[TimeLike] = None,
        end: Optional[TimeLike] = None,
        audit: Optional[AuditCollector] = None,
    ) -> CongestionSeries:
        audit = audit if audit is not None else AuditCollector()
        start = to_utc(start) if start is not None else self.start
        end = to_utc(end) if end is not None else self.end

        unique = list(dict.fromkeys(batch.reports))
        audit.record("series_duplicates", len(batch.reports) - len(unique))

        unique.sort(key=lambda r: (r.report_time, r.road_id, r.comment_id))
        full = CongestionSeries(tuple(unique))
        series = full.between(start, end)
        audit.record("outside_window", len(full) - len(series))
        audit.record("rows_out", len(series))

        logger.info(
            f"Assembled series of {len(series)} reports "
            f"(window {start.isoformat() if start else '-inf'} .. {end.isoformat() if end else '+inf'})"
        )
        return series
