"""
Domain entities for the report reconstruction pipeline.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple

import pandas as pd

from ...common.exceptions import IntegrityError
from ...common.schemas.reports import NormalizedReport, ResolvedReport

NO_MINOR = "NO_MINOR"

SERIES_COLUMNS = ["road_id", "comment_id", "report_time", "congestion"]


class ReportCategory(Enum):
    CONGESTION = "congestion"
    FREE_TEXT = "free_text"
    QUESTION = "question"
    INCIDENT = "incident"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ReportTypeCodes:
    """
    Partition of per-report status codes into report categories.
    Congestion codes carry the score itself (1-5).
    """
    congestion: FrozenSet[int] = frozenset({1, 2, 3, 4, 5})
    question: FrozenSet[int] = frozenset({6})
    incident: FrozenSet[int] = frozenset({7, 8, 9})
    free_text: FrozenSet[int] = frozenset({10})

    def __post_init__(self):
        groups = [self.congestion, self.question, self.incident, self.free_text]
        seen = set()
        for group in groups:
            if seen & set(group):
                raise ValueError(f"Status codes assigned to more than one category: {sorted(seen & set(group))}")
            seen |= set(group)

    def categorize(self, status_id: Optional[int]) -> ReportCategory:
        # A missing status means the score was lost, same as the info sentinel
        if status_id is None or status_id in self.free_text:
            return ReportCategory.FREE_TEXT
        if status_id in self.congestion:
            return ReportCategory.CONGESTION
        if status_id in self.question:
            return ReportCategory.QUESTION
        if status_id in self.incident:
            return ReportCategory.INCIDENT
        return ReportCategory.UNKNOWN


@dataclass(frozen=True)
class RoadIdentity:
    """
    Read-only mapping road_id -> (major_name, minor_name).
    Exactly one name pair per road id.
    """
    names: Mapping[str, Tuple[str, str]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "names", MappingProxyType(dict(self.names)))

    @classmethod
    def from_triples(cls, triples: Iterable[Tuple[str, str, str]]) -> "RoadIdentity":
        unique = set(triples)
        pairs: Dict[str, set] = {}
        for road_id, major, minor in unique:
            pairs.setdefault(road_id, set()).add((major, minor))

        if len(pairs) != len(unique):
            conflicts = {road_id: sorted(names) for road_id, names in pairs.items() if len(names) > 1}
            raise IntegrityError(
                f"{len(conflicts)} road id(s) map to more than one road name: {conflicts}"
            )
        return cls({road_id: next(iter(names)) for road_id, names in pairs.items()})

    def major(self, road_id: str) -> str:
        return self.names[road_id][0]

    def minor(self, road_id: str) -> str:
        return self.names[road_id][1]

    def __contains__(self, road_id: object) -> bool:
        return road_id in self.names

    def __len__(self) -> int:
        return len(self.names)

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {"road_id": road_id, "major_name": major, "minor_name": minor}
            for road_id, (major, minor) in sorted(self.names.items())
        ]
        return pd.DataFrame(rows, columns=["road_id", "major_name", "minor_name"])


@dataclass(frozen=True)
class NormalizedBatch:
    """
    Output of the normalizer: deduplicated reports plus the road identity table.
    """
    reports: Tuple[NormalizedReport, ...]
    identity: RoadIdentity

    def __len__(self) -> int:
        return len(self.reports)


@dataclass(frozen=True)
class ResolvedBatch:
    """
    Output of the resolver: congestion reports only, score in 1-5.
    """
    reports: Tuple[ResolvedReport, ...]
    identity: RoadIdentity

    def __len__(self) -> int:
        return len(self.reports)


@dataclass(frozen=True)
class CongestionSeries:
    """
    Canonical congestion time series.
    Records are unique and ordered by (report_time, road_id, comment_id).
    """
    records: Tuple[ResolvedReport, ...] = ()

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ResolvedReport]:
        return iter(self.records)

    @property
    def start(self) -> Optional[datetime]:
        return self.records[0].report_time if self.records else None

    @property
    def end(self) -> Optional[datetime]:
        return self.records[-1].report_time if self.records else None

    def roads(self) -> Tuple[str, ...]:
        return tuple(sorted({r.road_id for r in self.records}))

    def between(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> "CongestionSeries":
        """Records with start <= report_time < end; None leaves a side open."""
        return CongestionSeries(tuple(
            r for r in self.records
            if (start is None or r.report_time >= start) and (end is None or r.report_time < end)
        ))

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame([r.model_dump() for r in self.records], columns=SERIES_COLUMNS)
        frame["report_time"] = pd.to_datetime(frame["report_time"], utc=True)
        frame["congestion"] = frame["congestion"].astype(int)
        return frame
