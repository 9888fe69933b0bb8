import os
import sys
from datetime import timedelta
import hydra
from omegaconf import DictConfig, OmegaConf

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.common.logging import setup_logger
from src.reports.application.builder import PipelineApplicationBuilder
from src.reports.application.assembler import bucketed_counts
from src.analysis.application.segments import segment_labels
from src.analysis.application.inference import results_frame

logger = setup_logger("roadreports")

@hydra.main(version_base=None, config_path="../conf", config_name="config")
def main(cfg: DictConfig):
    print(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    builder = (
        PipelineApplicationBuilder(cfg)
        .build_source()
        .build_persistence()
        .build_analysis()
    )
    pipeline = builder.build_pipeline()
    components = builder.get_components()
    repository = components['repository']
    aggregator = components['segment_aggregator']
    engine = components['inference_engine']
    settings = builder.pipeline_cfg

    result = pipeline.run(components['source'])
    series = result.series
    print(f"\nRun summary:\n{result.summary.format()}")

    if not len(series):
        print("No congestion reports left after reconstruction.")
        return

    density = bucketed_counts(series, settings.window.bucket_width)
    central = engine.central_tendency(series)
    intervals = engine.confidence_intervals(series)
    weekend_tests = engine.compare_weekend(series)

    segments = list(settings.analysis.segments)
    opposite = list(settings.analysis.opposite_segments)
    direction_tests = engine.compare_directions(series, segments, opposite) if opposite else []

    if repository:
        repository.save_series(series)
        repository.save_table("road_identity", result.identity.to_frame())
        repository.save_table("observation_density", density.reset_index())
        repository.save_table("central_tendency", results_frame(central))
        repository.save_table("confidence_intervals", results_frame(intervals))
        repository.save_table("weekend_tests", results_frame(weekend_tests))
        repository.save_table("direction_tests", results_frame(direction_tests))

        if segments:
            start = settings.window.start or series.start
            end = settings.window.end or series.end + timedelta(minutes=1)
            matrix = aggregator.aggregate(series, segments, start, end)
            frame = matrix.to_frame()
            frame.columns = segment_labels(segments, result.identity, with_ids=True)
            repository.save_table("segment_matrix", frame, index=True)

    rejected = sum(r.reject_null for r in weekend_tests + direction_tests)
    logger.info(f"{len(series)} reports, {len(central)} groups, "
                f"{len(weekend_tests) + len(direction_tests)} tests ({rejected} significant)")

if __name__ == "__main__":
    main()
