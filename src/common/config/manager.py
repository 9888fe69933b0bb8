from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pathlib import Path

from conf.config_models import PipelineConfig
from ..exceptions import ConfigurationError

class ConfigManager:
    """Centralizes loading and validation of pipeline configuration"""

    def __init__(self, config_dir: Path = Path("conf")):
        self.config_dir = Path(config_dir)

    def load_pipeline_config(self, profile: str = "default") -> DictConfig:
        """Loads a pipeline profile and validates it against the schema"""
        config_path = self.config_dir / "pipeline" / f"{profile}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Config not found: {config_path}")

        cfg = OmegaConf.load(config_path)
        return self.validate(cfg)

    @staticmethod
    def validate(cfg: DictConfig) -> DictConfig:
        """Merges cfg onto the structured schema and checks value ranges"""
        required_keys = ['normalizer', 'resolver', 'analysis']
        for key in required_keys:
            if key not in cfg:
                raise ConfigurationError(f"Missing required config key: {key}")

        try:
            merged = OmegaConf.merge(OmegaConf.structured(PipelineConfig), cfg)
        except OmegaConfBaseException as e:
            raise ConfigurationError(f"Invalid pipeline config: {e}") from e

        codes = merged.resolver.status_codes
        if any(code < 1 or code > 5 for code in codes.congestion):
            raise ConfigurationError("Congestion status codes must be within 1-5")
        seen = set()
        for category in ("congestion", "question", "incident", "free_text"):
            overlap = seen & set(codes[category])
            if overlap:
                raise ConfigurationError(f"Status codes {sorted(overlap)} assigned to more than one category")
            seen |= set(codes[category])
        if merged.resolver.slowest_congestion not in codes.congestion:
            raise ConfigurationError(
                f"slowest_congestion {merged.resolver.slowest_congestion} is not a congestion code"
            )

        thresholds = [int(bp[0]) for bp in merged.resolver.speed_breakpoints]
        if thresholds != sorted(thresholds, reverse=True):
            raise ConfigurationError("speed_breakpoints must be ordered by descending speed")
        for _, code in merged.resolver.speed_breakpoints:
            if code not in merged.resolver.status_codes.congestion:
                raise ConfigurationError(f"Breakpoint congestion {code} is not a congestion code")

        analysis = merged.analysis
        if any(day < 0 or day > 6 for day in analysis.weekend_days):
            raise ConfigurationError("weekend_days must be weekday numbers 0 (Monday) to 6")
        if not 0 < analysis.alpha < 1:
            raise ConfigurationError("alpha must be between 0 and 1")
        if not 0 < analysis.confidence < 1:
            raise ConfigurationError("confidence must be between 0 and 1")
        if analysis.min_samples < 2:
            raise ConfigurationError("min_samples must be at least 2")
        if len(analysis.segments) != len(analysis.opposite_segments) and analysis.opposite_segments:
            raise ConfigurationError("opposite_segments must pair one-to-one with segments")

        return merged
