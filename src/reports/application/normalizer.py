"""
Record normalization: decode crawl rows, recover absolute report times,
split road names and collapse re-crawled duplicates.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..domain.entities import NO_MINOR, NormalizedBatch, RoadIdentity
from ...common.exceptions import ParseError
from ...common.logging import log_execution_time
from ...common.metrics import AuditCollector
from ...common.schemas.reports import CRAWL_TIME_FORMAT, NormalizedReport, RawReport

logger = logging.getLogger(__name__)

RawRow = Union[RawReport, Mapping[str, Any]]


def round_to_minute(moment: datetime) -> datetime:
    """Rounds to the nearest minute, half a minute rounds up."""
    return (moment + timedelta(seconds=30)).replace(second=0, microsecond=0)


def relative_to_absolute(crawl_time: datetime, hours: int, minutes: int) -> datetime:
    """
    Converts an 'hours/minutes ago' offset observed at crawl_time into an instant.

    Raises:
        ParseError: if the offset reaches outside the representable date range.
    """
    try:
        return round_to_minute(crawl_time - timedelta(hours=hours, minutes=minutes))
    except OverflowError as e:
        raise ParseError(f"offset {hours}h{minutes}m before {crawl_time.isoformat()} is out of range") from e


def split_road_name(compound: str, delimiter: str = ";", missing_minor: str = NO_MINOR) -> Tuple[str, str]:
    major, sep, minor = compound.partition(delimiter)
    major, minor = major.strip(), minor.strip()
    if not sep or not minor:
        minor = missing_minor
    return major, minor


def decode_report(row: RawRow, crawl_time_format: str = CRAWL_TIME_FORMAT) -> RawReport:
    """
    Validates one raw row.

    Raises:
        ParseError: if the crawl timestamp or any typed field does not decode.
    """
    if isinstance(row, RawReport):
        return row
    try:
        fields = dict(row)
    except (TypeError, ValueError) as e:
        raise ParseError(f"row is not a field mapping: {type(row).__name__}") from e
    try:
        return RawReport.model_validate(fields, context={"crawl_time_format": crawl_time_format})
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ParseError(f"{location}: {first['msg']}") from e


def _dedup_key(report: NormalizedReport) -> tuple:
    return (
        report.road_id, report.major_name, report.minor_name,
        report.status_id, report.comment_id, report.comment_text,
    )


def deduplicate(
    reports: Iterable[NormalizedReport],
    tolerance: timedelta = timedelta(minutes=1),
) -> Tuple[List[NormalizedReport], int, int]:
    """
    Collapses exact duplicates, then near-duplicates whose report times chain
    within `tolerance` of each other (all other fields equal).
    The earliest report of each chain is kept; input order is preserved.

    Returns:
        (kept reports, exact duplicate count, near duplicate count)
    """
    reports = list(reports)
    unique = list(dict.fromkeys(reports))
    exact = len(reports) - len(unique)

    groups = defaultdict(list)
    for report in unique:
        groups[_dedup_key(report)].append(report)

    kept = set()
    for group in groups.values():
        group.sort(key=lambda r: r.report_time)
        previous = None
        for report in group:
            if previous is None or report.report_time - previous > tolerance:
                kept.add(report)
            previous = report.report_time

    result = [report for report in unique if report in kept]
    return result, exact, len(unique) - len(result)


class RecordNormalizer:
    """
    First pipeline stage: raw crawl rows -> NormalizedBatch.
    """
    def __init__(
        self,
        crawl_time_format: str = CRAWL_TIME_FORMAT,
        road_name_delimiter: str = ";",
        missing_minor: str = NO_MINOR,
        duplicate_tolerance: timedelta = timedelta(minutes=1),
    ):
        if not road_name_delimiter:
            raise ValueError("road_name_delimiter must not be empty")
        self.crawl_time_format = crawl_time_format
        self.road_name_delimiter = road_name_delimiter
        self.missing_minor = missing_minor
        self.duplicate_tolerance = duplicate_tolerance

    def split_name(self, compound: str) -> Tuple[str, str]:
        return split_road_name(compound, self.road_name_delimiter, self.missing_minor)

    def build_identity(self, reports: Iterable[RawReport]) -> RoadIdentity:
        """
        Raises:
            IntegrityError: if a road id carries more than one name pair.
        """
        return RoadIdentity.from_triples(
            (r.road_id, *self.split_name(r.road_name_compound)) for r in reports
        )

    def to_normalized(self, report: RawReport) -> NormalizedReport:
        major, minor = self.split_name(report.road_name_compound)
        return NormalizedReport(
            road_id=report.road_id,
            major_name=major,
            minor_name=minor,
            report_time=relative_to_absolute(
                report.crawl_time, report.report_relative_hours, report.report_relative_minutes
            ),
            status_id=report.status_id,
            comment_id=report.comment_id,
            comment_text=report.comment_text,
        )

    @staticmethod
    def last_update_time(report: RawReport) -> Optional[datetime]:
        """None when the road update offset is missing or out of range."""
        if report.road_update_relative_hours is None or report.road_update_relative_minutes is None:
            return None
        try:
            return relative_to_absolute(
                report.crawl_time, report.road_update_relative_hours, report.road_update_relative_minutes
            )
        except ParseError:
            return None

    @log_execution_time(logger, stage="normalizer")
    def normalize(self, rows: Iterable[RawRow], audit: Optional[AuditCollector] = None) -> NormalizedBatch:
        audit = audit if audit is not None else AuditCollector()
        decoded: List[RawReport] = []
        candidates: List[NormalizedReport] = []
        rows_in = 0

        for index, row in enumerate(rows):
            rows_in += 1
            try:
                report = decode_report(row, self.crawl_time_format)
                candidate = self.to_normalized(report)
            except ParseError as e:
                audit.record("dropped_decode")
                audit.add_diagnostic("normalizer", f"row {index}: {e}")
                logger.debug(f"Dropping row {index}: {e}")
                continue
            decoded.append(report)
            candidates.append(candidate)
        audit.record("rows_in", rows_in)

        identity = self.build_identity(decoded)

        # Road-level update times are only inspected, the status snapshot is discarded
        update_times = [t for t in map(self.last_update_time, decoded) if t is not None]
        if update_times:
            logger.debug(f"Latest road status update: {max(update_times).isoformat()}")

        normalized, exact, near = deduplicate(candidates, self.duplicate_tolerance)
        audit.record("exact_duplicates", exact)
        audit.record("near_duplicates", near)
        audit.record("normalized_rows", len(normalized))

        logger.info(
            f"Normalized {rows_in} rows: {rows_in - len(decoded)} undecodable, "
            f"{exact} exact and {near} near duplicates, {len(normalized)} kept "
            f"across {len(identity)} roads"
        )
        return NormalizedBatch(reports=tuple(normalized), identity=identity)
