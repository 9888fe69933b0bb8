from dataclasses import dataclass, field
from typing import Optional, Dict, List

@dataclass
class SourceConfig:
    path: str = "data/raw/traffic_reports.csv"
    # CSV column name -> RawReport field name
    columns: Dict[str, str] = field(default_factory=dict)

@dataclass
class NormalizerConfig:
    crawl_time_format: str = "%a %b %d %H:%M:%S UTC %Y"
    road_name_delimiter: str = ";"
    missing_minor: str = "NO_MINOR"
    duplicate_tolerance_minutes: int = 1

@dataclass
class StatusCodesConfig:
    congestion: List[int] = field(default_factory=lambda: [1, 2, 3, 4, 5])
    question: List[int] = field(default_factory=lambda: [6])
    incident: List[int] = field(default_factory=lambda: [7, 8, 9])  # hazard, accident, closure
    free_text: List[int] = field(default_factory=lambda: [10])  # "info" sentinel

@dataclass
class ResolverConfig:
    status_codes: StatusCodesConfig = field(default_factory=StatusCodesConfig)
    # [speed_kmh, congestion]: speed strictly above the threshold maps to the code
    speed_breakpoints: List[List[int]] = field(
        default_factory=lambda: [[79, 1], [39, 2], [19, 3], [9, 4]]
    )
    slowest_congestion: int = 5

@dataclass
class WindowConfig:
    start: Optional[str] = None
    end: Optional[str] = None
    bucket_width: str = "1h"

@dataclass
class AnalysisConfig:
    weekend_days: List[int] = field(default_factory=lambda: [4, 5])  # Monday=0
    timezone: str = "UTC"
    min_samples: int = 30
    alpha: float = 0.05
    confidence: float = 0.95
    max_workers: int = 1
    segments: List[str] = field(default_factory=list)
    opposite_segments: List[str] = field(default_factory=list)

@dataclass
class OutputConfig:
    enabled: bool = True
    output_dir: str = "data/processed"

@dataclass
class PipelineConfig:
    source: SourceConfig = field(default_factory=SourceConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    window: WindowConfig = field(default_factory=WindowConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
