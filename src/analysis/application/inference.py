"""
Descriptive and inferential statistics over the congestion series,
grouped by (road, weekend flag, local hour of day).
"""
import logging
import math
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ...common.exceptions import InsufficientSample
from ...common.logging import log_execution_time
from ...common.schemas.reports import CentralTendencyRow, ConfidenceIntervalRow, HypothesisResult
from ...reports.domain import CongestionSeries

logger = logging.getLogger(__name__)

GROUP_KEYS = ["road_id", "is_weekend", "hour_of_day"]

# Friday and Saturday (Monday = 0)
DEFAULT_WEEKEND_DAYS = (4, 5)

# (key, samples_a, samples_b) for one test cell
Cell = Tuple[tuple, Sequence[float], Sequence[float]]


def mode_of(values: Iterable[int]) -> int:
    """Most frequent value; ties go to the value seen first."""
    return Counter(values).most_common(1)[0][0]


class InferenceEngine:
    """
    Central tendency, confidence intervals and Welch two-sample tests.
    """
    def __init__(
        self,
        weekend_days: Sequence[int] = DEFAULT_WEEKEND_DAYS,
        timezone: str = "UTC",
        min_samples: int = 30,
        alpha: float = 0.05,
        confidence: float = 0.95,
        max_workers: int = 1,
    ):
        if any(day not in range(7) for day in weekend_days):
            raise ValueError(f"weekend_days must be weekday numbers 0-6, got {list(weekend_days)}")
        if min_samples < 2:
            raise ValueError("min_samples must be at least 2")
        if not 0 < alpha < 1 or not 0 < confidence < 1:
            raise ValueError("alpha and confidence must be between 0 and 1")
        self.weekend_days = frozenset(weekend_days)
        self.timezone = timezone
        self.min_samples = min_samples
        self.alpha = alpha
        self.confidence = confidence
        self.max_workers = max(1, max_workers)

    def calendar_frame(self, series: CongestionSeries) -> pd.DataFrame:
        """Series as a frame with local weekend flag and hour of day."""
        frame = series.to_frame()
        local = frame["report_time"].dt.tz_convert(self.timezone)
        frame["is_weekend"] = local.dt.dayofweek.isin(self.weekend_days)
        frame["hour_of_day"] = local.dt.hour.astype(int)
        return frame

    # --- Descriptive statistics ---

    @log_execution_time(logger)
    def central_tendency(self, series: CongestionSeries) -> List[CentralTendencyRow]:
        frame = self.calendar_frame(series)
        rows = []
        for (road_id, is_weekend, hour), group in frame.groupby(GROUP_KEYS, sort=True):
            values = group["congestion"].to_numpy(dtype=float)
            n = len(values)
            variance = float(np.var(values, ddof=1)) if n > 1 else None
            rows.append(CentralTendencyRow(
                road_id=road_id,
                is_weekend=bool(is_weekend),
                hour_of_day=int(hour),
                mean=float(values.mean()),
                variance=variance,
                stddev=math.sqrt(variance) if variance is not None else None,
                median=float(np.median(values)),
                mode=int(mode_of(group["congestion"].tolist())),
                sample_size=n,
            ))
        logger.info(f"Computed central tendency for {len(rows)} groups")
        return rows

    def confidence_interval(self, samples: Sequence[float]) -> Tuple[float, float, float]:
        """
        Two-sided t-interval for the mean with len(samples) - 1 degrees of freedom.

        Returns:
            (mean, lower, upper)

        Raises:
            InsufficientSample: for fewer than two samples.
        """
        values = np.asarray(samples, dtype=float)
        n = len(values)
        if n < 2:
            raise InsufficientSample(f"Confidence interval needs at least 2 samples, got {n}")
        mean = float(values.mean())
        t_critical = stats.t.ppf(1 - (1 - self.confidence) / 2, n - 1)
        half_width = float(t_critical * values.std(ddof=1) / math.sqrt(n))
        return mean, mean - half_width, mean + half_width

    @log_execution_time(logger)
    def confidence_intervals(self, series: CongestionSeries) -> List[ConfidenceIntervalRow]:
        frame = self.calendar_frame(series)
        rows = []
        for (road_id, is_weekend, hour), group in frame.groupby(GROUP_KEYS, sort=True):
            try:
                mean, lower, upper = self.confidence_interval(group["congestion"].tolist())
            except InsufficientSample:
                continue
            rows.append(ConfidenceIntervalRow(
                road_id=road_id,
                is_weekend=bool(is_weekend),
                hour_of_day=int(hour),
                mean=mean,
                lower=lower,
                upper=upper,
                sample_size=len(group),
                degrees_of_freedom=len(group) - 1,
            ))
        return rows

    # --- Hypothesis tests ---

    def welch_test(self, samples_a: Sequence[float], samples_b: Sequence[float]) -> Optional[float]:
        """
        Unpaired two-sample t-test without the equal variance assumption.
        Returns the p-value, or None when it is undefined (both sides constant and equal).

        Raises:
            InsufficientSample: if either side has fewer than min_samples values.
        """
        n_a, n_b = len(samples_a), len(samples_b)
        if n_a < self.min_samples or n_b < self.min_samples:
            raise InsufficientSample(
                f"Welch test needs {self.min_samples} samples per side, got {n_a} and {n_b}"
            )
        with np.errstate(divide="ignore", invalid="ignore"):
            result = stats.ttest_ind(
                np.asarray(samples_a, dtype=float),
                np.asarray(samples_b, dtype=float),
                equal_var=False,
            )
        p_value = float(result.pvalue)
        return None if math.isnan(p_value) else p_value

    def _run_cells(self, cells: List[Cell], make_result: Callable) -> List[HypothesisResult]:
        def evaluate(cell: Cell) -> Optional[HypothesisResult]:
            key, samples_a, samples_b = cell
            try:
                p_value = self.welch_test(samples_a, samples_b)
            except InsufficientSample:
                return None
            return make_result(
                key, len(samples_a), len(samples_b), p_value,
                p_value is not None and p_value < self.alpha,
            )

        if self.max_workers > 1 and len(cells) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(evaluate, cells))
        else:
            results = [evaluate(cell) for cell in cells]

        keyed = sorted(zip((cell[0] for cell in cells), results), key=lambda pair: pair[0])
        kept = [r for _, r in keyed if r is not None]
        logger.info(f"Evaluated {len(cells)} cells, {len(kept)} met the minimum sample size")
        return kept

    @log_execution_time(logger)
    def compare_directions(
        self,
        series: CongestionSeries,
        segments_a: Sequence[str],
        segments_b: Sequence[str],
    ) -> List[HypothesisResult]:
        """
        Tests each segment against its opposite-direction counterpart
        (same position in the parallel list) at matched weekend flag and hour.
        Results are ordered by (road, paired road, weekend flag, hour).
        """
        if len(segments_a) != len(segments_b):
            raise ValueError(
                f"Segment lists must pair one-to-one, got {len(segments_a)} and {len(segments_b)}"
            )
        frame = self.calendar_frame(series)
        samples = frame.groupby(GROUP_KEYS, sort=True)["congestion"].apply(list).to_dict()

        cells = []
        for road_a, road_b in zip(map(str, segments_a), map(str, segments_b)):
            for is_weekend in (False, True):
                for hour in range(24):
                    a = samples.get((road_a, is_weekend, hour))
                    b = samples.get((road_b, is_weekend, hour))
                    if a and b:
                        cells.append(((road_a, road_b, is_weekend, hour), a, b))

        def make_result(key, n_a, n_b, p_value, reject):
            road_a, road_b, is_weekend, hour = key
            return HypothesisResult(
                test_family="direction", road_id=road_a, paired_road_id=road_b,
                is_weekend=is_weekend, hour_of_day=hour,
                sample_size_a=n_a, sample_size_b=n_b,
                p_value=p_value, reject_null=reject,
            )

        return self._run_cells(cells, make_result)

    @log_execution_time(logger)
    def compare_weekend(self, series: CongestionSeries) -> List[HypothesisResult]:
        """Tests weekday against weekend congestion for each road and hour."""
        frame = self.calendar_frame(series)
        samples = frame.groupby(GROUP_KEYS, sort=True)["congestion"].apply(list).to_dict()

        cells = []
        for road_id in sorted(frame["road_id"].unique()):
            for hour in range(24):
                weekday = samples.get((road_id, False, hour))
                weekend = samples.get((road_id, True, hour))
                if weekday and weekend:
                    cells.append(((road_id, hour), weekday, weekend))

        def make_result(key, n_a, n_b, p_value, reject):
            road_id, hour = key
            return HypothesisResult(
                test_family="weekend", road_id=road_id, hour_of_day=hour,
                sample_size_a=n_a, sample_size_b=n_b,
                p_value=p_value, reject_null=reject,
            )

        return self._run_cells(cells, make_result)


def results_frame(rows: Sequence) -> pd.DataFrame:
    """Flat table of schema rows for export."""
    return pd.DataFrame([row.model_dump() for row in rows])
