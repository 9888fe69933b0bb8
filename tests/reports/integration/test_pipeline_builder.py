import pandas as pd
import pytest
from pathlib import Path
from omegaconf import OmegaConf
from src.common.exceptions import ConfigurationError
from src.common.schemas.reports import CRAWL_TIME_FORMAT
from src.reports.application.builder import PipelineApplicationBuilder
from src.reports.infrastructure.sources import CSVReportSource
from datetime import datetime, timezone

CONF_DIR = Path(__file__).resolve().parents[3] / "conf"
CRAWL = datetime(2016, 1, 5, 9, 20, 3, tzinfo=timezone.utc)

def export_row(comment_id, status, text, road_id=3, road_name="Ring Road;Maadi To Moneeb", minutes=10):
    """A row of the raw crawl export, with its original column names."""
    return {
        "crawl_date": CRAWL.strftime(CRAWL_TIME_FORMAT),
        "road_id": road_id,
        "road_name": road_name,
        "rd_rp_stid": status,
        "rd_stid": 3,
        "rd_rp_hr": 0,
        "rd_rp_mn": minutes,
        "rd_hr": 0,
        "rd_mn": 5,
        "rd_rp_cmid": comment_id,
        "rd_rp_cm": text,
        "ad_url": "",
    }

@pytest.fixture
def export_csv(tmp_path):
    rows = [
        export_row(1, 2, "7alawa"),
        export_row(2, 10, "[GPS] 15 km/h", minutes=40),
        export_row(3, "", "السرعة 90 كم/س", road_id=7, road_name="Salah Salem", minutes=20),
        export_row(4, 10, "zahma"),
        export_row(5, 6, "ezzay el tare2?"),
        export_row(1, 2, "7alawa"),
    ]
    rows.append({**export_row(6, 3, "mashy"), "crawl_date": "2016-01-05 09:20:03"})
    path = tmp_path / "reports.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path

@pytest.fixture
def config(export_csv, tmp_path):
    cfg = OmegaConf.load(CONF_DIR / "pipeline" / "default.yaml")
    cfg.source.path = str(export_csv)
    cfg.output.output_dir = str(tmp_path / "out")
    return OmegaConf.create({"pipeline": cfg})

def test_source_renames_columns(export_csv):
    source = CSVReportSource(str(export_csv), columns={"crawl_date": "crawl_time", "rd_rp_cmid": "comment_id"})
    first = next(iter(source))
    assert first["crawl_time"] == CRAWL.strftime(CRAWL_TIME_FORMAT)
    assert first["comment_id"] == "1"

def test_source_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(CSVReportSource(str(tmp_path / "missing.csv")))

def test_builder_runs_csv_export(config):
    builder = PipelineApplicationBuilder(config).build_source().build_persistence().build_analysis()
    pipeline = builder.build_pipeline()
    components = builder.get_components()

    result = pipeline.run(components["source"])
    summary = result.summary

    assert summary.rows_in == 7
    assert summary.dropped_decode == 1
    assert summary.exact_duplicates == 1
    assert summary.question_reports == 1
    assert summary.dropped_unresolved == 1
    assert summary.recovered_from_text == 2
    assert [(r.comment_id, r.congestion) for r in result.series] == [("2", 4), ("3", 1), ("1", 2)]
    assert result.identity.major("7") == "Salah Salem"
    assert components["inference_engine"].timezone == "Africa/Cairo"

def test_repository_writes_series(config):
    builder = PipelineApplicationBuilder(config).build_source().build_persistence()
    result = builder.build_pipeline().run(builder.source)

    path = builder.repository.save_series(result.series)
    saved = pd.read_csv(path, dtype={"road_id": str, "comment_id": str})
    assert list(saved.columns) == ["road_id", "comment_id", "report_time", "congestion"]
    assert len(saved) == len(result.series)
    assert saved["report_time"].iloc[0] == "2016-01-05 08:40:00+0000"

def test_persistence_disabled(config):
    config.pipeline.output.enabled = False
    builder = PipelineApplicationBuilder(config).build_persistence()
    assert builder.repository is None

def test_invalid_config_rejected(config):
    config.pipeline.analysis.alpha = 2.0
    with pytest.raises(ConfigurationError):
        PipelineApplicationBuilder(config)

def test_invalid_resolver_settings_rejected(config):
    config.pipeline.resolver.status_codes.incident = [6, 7, 8, 9]
    with pytest.raises(ConfigurationError):
        PipelineApplicationBuilder(config).build_resolver()
