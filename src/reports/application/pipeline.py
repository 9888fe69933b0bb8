import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..domain import CongestionSeries, RoadIdentity
from .normalizer import RawRow, RecordNormalizer
from .resolver import CongestionResolver
from .assembler import TimeSeriesAssembler, TimeLike
from ...common.metrics import AuditCollector, RunSummary

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class PipelineResult:
    series: CongestionSeries
    identity: RoadIdentity
    summary: RunSummary
    diagnostics: Tuple[Tuple[str, str], ...] = ()

class ReconstructionPipeline:
    """
    Orchestrates the reconstruction pipeline:
    Raw rows -> Normalizer -> Resolver -> Assembler -> CongestionSeries
    """
    def __init__(
        self,
        normalizer: RecordNormalizer = None,
        resolver: CongestionResolver = None,
        assembler: TimeSeriesAssembler = None,
    ):
        self.normalizer = normalizer or RecordNormalizer()
        self.resolver = resolver or CongestionResolver()
        self.assembler = assembler or TimeSeriesAssembler()

    def run(
        self,
        rows: Iterable[RawRow],
        start: Optional[TimeLike] = None,
        end: Optional[TimeLike] = None,
    ) -> PipelineResult:
        """
        Runs every stage once over the complete input.
        Per-row failures are counted in the summary; IntegrityError aborts.
        """
        audit = AuditCollector()

        normalized = self.normalizer.normalize(rows, audit=audit)
        resolved = self.resolver.resolve(normalized, audit=audit)
        series = self.assembler.assemble(resolved, start=start, end=end, audit=audit)

        summary = audit.get_summary()
        logger.info(
            f"Pipeline finished: {summary.rows_in} rows in, {summary.rows_out} out, "
            f"{summary.dropped_decode} undecodable, {summary.dropped_unresolved} unresolved"
        )
        return PipelineResult(
            series=series,
            identity=normalized.identity,
            summary=summary,
            diagnostics=tuple(audit.diagnostics),
        )
