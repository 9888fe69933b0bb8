import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..domain import SegmentMatrix
from ...reports.application.assembler import TimeLike, to_utc
from ...reports.domain import CongestionSeries, RoadIdentity
from ...common.logging import log_execution_time

logger = logging.getLogger(__name__)

class SegmentAggregator:
    """
    Buckets a congestion series into a segment x time matrix for an ordered
    list of road segments (e.g. consecutive stretches along one route).
    """
    def __init__(self, bucket_width: str = "1h"):
        self.bucket_width = bucket_width

    @staticmethod
    def _check_segments(segments: Sequence[str]) -> List[str]:
        segments = [str(s) for s in segments]
        if len(set(segments)) != len(segments):
            raise ValueError(f"Duplicate road ids in segment list: {segments}")
        return segments

    def _window_frame(self, series: CongestionSeries, segments: List[str], start, end) -> pd.DataFrame:
        frame = series.to_frame()
        times = frame["report_time"]
        mask = (times >= start) & (times < end) & frame["road_id"].isin(segments)
        return frame.loc[mask]

    @log_execution_time(logger)
    def aggregate(
        self,
        series: CongestionSeries,
        segments: Sequence[str],
        start: TimeLike,
        end: TimeLike,
        bucket_width: Optional[str] = None,
    ) -> SegmentMatrix:
        """
        Mean congestion per left-closed bucket of [start, end) and per segment.
        Every bucket of the window appears, even when all of its cells are missing.
        """
        segments = self._check_segments(segments)
        start, end = pd.Timestamp(to_utc(start)), pd.Timestamp(to_utc(end))
        if end <= start:
            raise ValueError(f"Window end {end} must be after start {start}")
        width = pd.Timedelta(bucket_width or self.bucket_width)
        if width <= pd.Timedelta(0):
            raise ValueError(f"Bucket width must be positive, got {width}")

        n_buckets = math.ceil((end - start) / width)
        bucket_starts = tuple(start + i * width for i in range(n_buckets))

        frame = self._window_frame(series, segments, start, end)
        if frame.empty:
            values = np.full((n_buckets, len(segments)), np.nan)
        else:
            buckets = ((frame["report_time"] - start) // width).astype(int)
            means = (
                frame.assign(bucket=buckets)
                .groupby(["bucket", "road_id"])["congestion"]
                .mean()
                .unstack("road_id")
            )
            values = means.reindex(index=range(n_buckets), columns=segments).to_numpy(dtype=float)

        logger.info(
            f"Aggregated {len(frame)} reports into {n_buckets} buckets x {len(segments)} segments"
        )
        return SegmentMatrix(
            values=values,
            bucket_starts=bucket_starts,
            segments=tuple(segments),
            bucket_width=width,
        )

    def segment_samples(
        self,
        series: CongestionSeries,
        segments: Sequence[str],
        start: TimeLike,
        end: TimeLike,
    ) -> Dict[str, List[int]]:
        """Raw congestion values per segment in segment order, for box plots."""
        segments = self._check_segments(segments)
        frame = self._window_frame(series, segments, pd.Timestamp(to_utc(start)), pd.Timestamp(to_utc(end)))
        grouped = frame.groupby("road_id")["congestion"].apply(list)
        return {road_id: [int(v) for v in grouped.get(road_id, [])] for road_id in segments}


def segment_labels(segments: Sequence[str], identity: RoadIdentity, with_ids: bool = False) -> List[str]:
    """
    Minor road names in segment order, for axis labels.
    with_ids prefixes each label with its road id, which keeps labels unique
    when several roads share a minor name (e.g. NO_MINOR).
    """
    labels = []
    for road_id in map(str, segments):
        minor = identity.minor(road_id)
        labels.append(f"{road_id} {minor}" if with_ids else minor)
    return labels
