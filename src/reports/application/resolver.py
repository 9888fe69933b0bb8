"""
Congestion resolution: keep congestion reports, repair lost scores from
speeds quoted in the comment text, drop everything else.
"""
import logging
import re
from typing import Optional, Sequence, Tuple

from ..domain.entities import NormalizedBatch, ReportCategory, ReportTypeCodes, ResolvedBatch
from ...common.exceptions import UnresolvedCongestion
from ...common.logging import log_execution_time
from ...common.metrics import AuditCollector
from ...common.schemas.reports import NormalizedReport, ResolvedReport

logger = logging.getLogger(__name__)

# (speed_kmh, congestion): a speed strictly above the threshold maps to the code
DEFAULT_SPEED_BREAKPOINTS: Tuple[Tuple[int, int], ...] = ((79, 1), (39, 2), (19, 3), (9, 4))
SLOWEST_CONGESTION = 5

# A number (Latin or Arabic-Indic digits) followed by km/h in English or Arabic.
SPEED_PATTERN = re.compile(
    r"(\d+)(?:[.,]\d+)?\s*"
    r"(?:km\s*/\s*h(?:ou)?r?|kmh|kph|كم\s*/\s*(?:ساعة|س)|كم)",
    re.IGNORECASE,
)


def extract_speed(text: Optional[str]) -> Optional[int]:
    """Returns the first km/h speed quoted in text, or None."""
    if not text:
        return None
    match = SPEED_PATTERN.search(text)
    if match is None:
        return None
    return int(match.group(1))


def speed_to_congestion(
    speed: float,
    breakpoints: Sequence[Tuple[int, int]] = DEFAULT_SPEED_BREAKPOINTS,
    slowest: int = SLOWEST_CONGESTION,
) -> int:
    """Maps a speed in km/h onto the ordinal congestion scale (1 = free flow)."""
    for threshold, congestion in breakpoints:
        if speed > threshold:
            return congestion
    return slowest


class CongestionResolver:
    """
    Second pipeline stage: NormalizedBatch -> ResolvedBatch.
    """
    def __init__(
        self,
        codes: ReportTypeCodes = ReportTypeCodes(),
        speed_breakpoints: Sequence[Tuple[int, int]] = DEFAULT_SPEED_BREAKPOINTS,
        slowest_congestion: int = SLOWEST_CONGESTION,
    ):
        valid = set(range(1, 6))
        if not set(codes.congestion) <= valid:
            raise ValueError(f"Congestion codes must be within 1-5, got {sorted(codes.congestion)}")
        if slowest_congestion not in valid or any(code not in valid for _, code in speed_breakpoints):
            raise ValueError("Speed breakpoints must map onto congestion codes 1-5")
        self.codes = codes
        self.speed_breakpoints = tuple((int(t), int(c)) for t, c in speed_breakpoints)
        self.slowest_congestion = slowest_congestion

    def resolve_report(self, report: NormalizedReport) -> Tuple[ResolvedReport, bool]:
        """
        Resolves the congestion score of a congestion or free-text report.

        Returns:
            (resolved report, True if the score was recovered from the comment)

        Raises:
            UnresolvedCongestion: if the score is missing and no speed is quoted.
        """
        category = self.codes.categorize(report.status_id)
        if category is ReportCategory.CONGESTION:
            congestion, recovered = report.status_id, False
        elif category is ReportCategory.FREE_TEXT:
            speed = extract_speed(report.comment_text)
            if speed is None:
                raise UnresolvedCongestion(
                    f"comment {report.comment_id} on road {report.road_id} has no score and no speed"
                )
            congestion = speed_to_congestion(speed, self.speed_breakpoints, self.slowest_congestion)
            recovered = True
        else:
            raise ValueError(f"Report {report.comment_id} is a {category.value} report, not a congestion report")

        resolved = ResolvedReport(
            road_id=report.road_id,
            comment_id=report.comment_id,
            report_time=report.report_time,
            congestion=congestion,
        )
        return resolved, recovered

    @log_execution_time(logger, stage="resolver")
    def resolve(self, batch: NormalizedBatch, audit: Optional[AuditCollector] = None) -> ResolvedBatch:
        audit = audit if audit is not None else AuditCollector()
        resolved = []

        for report in batch.reports:
            category = self.codes.categorize(report.status_id)
            if category is ReportCategory.QUESTION:
                audit.record("question_reports")
                continue
            if category is ReportCategory.INCIDENT:
                audit.record("incident_reports")
                continue
            if category is ReportCategory.UNKNOWN:
                audit.record("unknown_type_reports")
                audit.add_diagnostic("resolver", f"comment {report.comment_id}: unknown status {report.status_id}")
                continue

            audit.record("congestion_reports" if category is ReportCategory.CONGESTION else "free_text_reports")
            try:
                result, recovered = self.resolve_report(report)
            except UnresolvedCongestion as e:
                audit.record("dropped_unresolved")
                audit.add_diagnostic("resolver", str(e))
                logger.debug(f"Dropping report: {e}")
                continue
            if recovered:
                audit.record("recovered_from_text")
            resolved.append(result)

        counts = audit.counts
        logger.info(
            f"Resolved {len(resolved)} congestion reports "
            f"({counts.get('recovered_from_text', 0)} recovered from text, "
            f"{counts.get('dropped_unresolved', 0)} unresolved dropped)"
        )
        return ResolvedBatch(reports=tuple(resolved), identity=batch.identity)
