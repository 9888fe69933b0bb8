import logging
from datetime import timedelta
from omegaconf import DictConfig, OmegaConf
from typing import Optional, Dict

from ..domain import ReportTypeCodes
from ..infrastructure.sources import CSVReportSource
from ..infrastructure.repositories import CSVSeriesRepository
from .normalizer import RecordNormalizer
from .resolver import CongestionResolver
from .assembler import TimeSeriesAssembler
from .pipeline import ReconstructionPipeline
from ...analysis.application.segments import SegmentAggregator
from ...analysis.application.inference import InferenceEngine
from ...common.config.manager import ConfigManager

logger = logging.getLogger(__name__)

class PipelineApplicationBuilder:
    """
    Builder pattern for constructing the reconstruction pipeline and its
    analysis components from configuration.
    """

    def __init__(self, config: DictConfig):
        self.config = config
        section = config.pipeline if 'pipeline' in config else config
        self.pipeline_cfg = ConfigManager.validate(section)

        # Components
        self.normalizer: Optional[RecordNormalizer] = None
        self.resolver: Optional[CongestionResolver] = None
        self.assembler: Optional[TimeSeriesAssembler] = None
        self.source: Optional[CSVReportSource] = None
        self.repository: Optional[CSVSeriesRepository] = None
        self.segment_aggregator: Optional[SegmentAggregator] = None
        self.inference_engine: Optional[InferenceEngine] = None
        self.pipeline: Optional[ReconstructionPipeline] = None

    def build_normalizer(self) -> 'PipelineApplicationBuilder':
        cfg = self.pipeline_cfg.normalizer
        self.normalizer = RecordNormalizer(
            crawl_time_format=cfg.crawl_time_format,
            road_name_delimiter=cfg.road_name_delimiter,
            missing_minor=cfg.missing_minor,
            duplicate_tolerance=timedelta(minutes=cfg.duplicate_tolerance_minutes),
        )
        return self

    def build_resolver(self) -> 'PipelineApplicationBuilder':
        cfg = self.pipeline_cfg.resolver
        codes = ReportTypeCodes(
            congestion=frozenset(cfg.status_codes.congestion),
            question=frozenset(cfg.status_codes.question),
            incident=frozenset(cfg.status_codes.incident),
            free_text=frozenset(cfg.status_codes.free_text),
        )
        self.resolver = CongestionResolver(
            codes=codes,
            speed_breakpoints=[tuple(bp) for bp in cfg.speed_breakpoints],
            slowest_congestion=cfg.slowest_congestion,
        )
        return self

    def build_assembler(self) -> 'PipelineApplicationBuilder':
        window = self.pipeline_cfg.window
        self.assembler = TimeSeriesAssembler(start=window.start, end=window.end)
        return self

    def build_source(self) -> 'PipelineApplicationBuilder':
        cfg = self.pipeline_cfg.source
        logger.info(f"Opening report source: {cfg.path}")
        self.source = CSVReportSource(
            path=cfg.path,
            columns=OmegaConf.to_container(cfg.columns, resolve=True),
        )
        return self

    def build_persistence(self) -> 'PipelineApplicationBuilder':
        cfg = self.pipeline_cfg.output
        if cfg.enabled:
            self.repository = CSVSeriesRepository(output_dir=cfg.output_dir)
        return self

    def build_analysis(self) -> 'PipelineApplicationBuilder':
        analysis = self.pipeline_cfg.analysis
        self.segment_aggregator = SegmentAggregator(bucket_width=self.pipeline_cfg.window.bucket_width)
        self.inference_engine = InferenceEngine(
            weekend_days=list(analysis.weekend_days),
            timezone=analysis.timezone,
            min_samples=analysis.min_samples,
            alpha=analysis.alpha,
            confidence=analysis.confidence,
            max_workers=analysis.max_workers,
        )
        return self

    def build_pipeline(self) -> ReconstructionPipeline:
        if not self.normalizer:
            self.build_normalizer()
        if not self.resolver:
            self.build_resolver()
        if not self.assembler:
            self.build_assembler()

        self.pipeline = ReconstructionPipeline(
            normalizer=self.normalizer,
            resolver=self.resolver,
            assembler=self.assembler,
        )
        return self.pipeline

    def get_components(self) -> Dict:
        """Returns built components for external use (e.g. export, analysis)"""
        return {
            'normalizer': self.normalizer,
            'resolver': self.resolver,
            'assembler': self.assembler,
            'source': self.source,
            'repository': self.repository,
            'segment_aggregator': self.segment_aggregator,
            'inference_engine': self.inference_engine,
        }
