"""
Domain entities for the segment analysis module.
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

@dataclass(frozen=True, eq=False)
class SegmentMatrix:
    """
    Mean congestion per (time bucket, segment).
    Rows follow bucket start time, columns follow the caller's segment order.
    NaN marks a bucket without reports for that segment.
    """
    values: np.ndarray
    bucket_starts: Tuple[pd.Timestamp, ...]
    segments: Tuple[str, ...]
    bucket_width: pd.Timedelta

    def __post_init__(self):
        if self.values.shape != (len(self.bucket_starts), len(self.segments)):
            raise ValueError(
                f"Matrix shape {self.values.shape} does not match "
                f"{len(self.bucket_starts)} buckets x {len(self.segments)} segments"
            )
        self.values.setflags(write=False)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    def cell(self, bucket_start, road_id: str) -> float:
        row = self.bucket_starts.index(pd.Timestamp(bucket_start))
        return float(self.values[row, self.segments.index(road_id)])

    def to_frame(self) -> pd.DataFrame:
        index = pd.DatetimeIndex(self.bucket_starts, name="bucket_start")
        return pd.DataFrame(self.values, index=index, columns=list(self.segments))
