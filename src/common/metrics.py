from dataclasses import dataclass, asdict, fields
from typing import Dict, List, Tuple

@dataclass
class RunSummary:
    """Row counts for every stage of a reconstruction run"""
    rows_in: int = 0
    dropped_decode: int = 0
    exact_duplicates: int = 0
    near_duplicates: int = 0
    normalized_rows: int = 0
    congestion_reports: int = 0
    free_text_reports: int = 0
    question_reports: int = 0
    incident_reports: int = 0
    unknown_type_reports: int = 0
    recovered_from_text: int = 0
    dropped_unresolved: int = 0
    series_duplicates: int = 0
    outside_window: int = 0
    rows_out: int = 0

    @property
    def dropped_total(self) -> int:
        return self.rows_in - self.rows_out

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['dropped_total'] = self.dropped_total
        return data

    def format(self) -> str:
        width = max(len(f.name) for f in fields(self))
        lines = [f"{name:<{width}}  {value}" for name, value in self.to_dict().items()]
        return "\n".join(lines)


class AuditCollector:
    """Collects per-stage counts and a bounded sample of row diagnostics"""

    MAX_DIAGNOSTICS = 1000

    def __init__(self):
        self.counts: Dict[str, int] = {}
        self.diagnostics: List[Tuple[str, str]] = []

    def record(self, key: str, count: int = 1):
        if key not in RunSummary.__dataclass_fields__:
            raise KeyError(f"Unknown audit counter: {key}")
        self.counts[key] = self.counts.get(key, 0) + count

    def update(self, counts: Dict[str, int]):
        for key, count in counts.items():
            self.record(key, count)

    def add_diagnostic(self, stage: str, message: str):
        self.diagnostics.append((stage, message))
        # Keep buffer size manageable
        if len(self.diagnostics) > self.MAX_DIAGNOSTICS:
            self.diagnostics.pop(0)

    def get_summary(self) -> RunSummary:
        return RunSummary(**self.counts)
