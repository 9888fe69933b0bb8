import pytest
from datetime import datetime, timezone
from pydantic import ValidationError
from src.common.schemas import (
    RawReport, NormalizedReport, ResolvedReport,
    CentralTendencyRow, ConfidenceIntervalRow, HypothesisResult
)

def raw_fields(**overrides):
    fields = dict(
        crawl_time="Sat Jan 02 09:20:03 UTC 2016",
        road_id="101",
        road_name_compound="Ring Road;Maadi To Moneeb",
        status_id=3,
        report_relative_hours=1,
        report_relative_minutes=5,
        comment_id="c1",
        comment_text="mashy",
    )
    fields.update(overrides)
    return fields

# --- RawReport Tests ---
def test_raw_report_decodes_crawl_time():
    report = RawReport(**raw_fields())
    assert report.crawl_time == datetime(2016, 1, 2, 9, 20, 3, tzinfo=timezone.utc)

def test_raw_report_invalid_crawl_time():
    with pytest.raises(ValidationError):
        RawReport(**raw_fields(crawl_time="2016-01-02T09:20:03"))

def test_raw_report_custom_crawl_format():
    report = RawReport.model_validate(
        raw_fields(crawl_time="2016-01-02 09:20"),
        context={"crawl_time_format": "%Y-%m-%d %H:%M"},
    )
    assert report.crawl_time.hour == 9

def test_raw_report_ignores_extra_columns():
    report = RawReport(**raw_fields(ad_url="http://ads", app_version="2.1"))
    assert not hasattr(report, "ad_url")

def test_raw_report_coerces_csv_values():
    report = RawReport(**raw_fields(
        road_id=12.0, comment_id=345, status_id=float("nan"), comment_text=float("nan"),
        report_relative_hours="2",
    ))
    assert report.road_id == "12"
    assert report.comment_id == "345"
    assert report.status_id is None
    assert report.comment_text is None
    assert report.report_relative_hours == 2

def test_raw_report_missing_offset():
    with pytest.raises(ValidationError):
        RawReport(**raw_fields(report_relative_minutes=float("nan")))

def test_raw_report_negative_offset():
    with pytest.raises(ValidationError):
        RawReport(**raw_fields(report_relative_hours=-1))

def test_raw_report_is_frozen():
    report = RawReport(**raw_fields())
    with pytest.raises(ValidationError):
        report.road_id = "999"

# --- Normalized / Resolved Tests ---
def test_normalized_reports_hash_by_value():
    when = datetime(2016, 1, 2, 9, 15, tzinfo=timezone.utc)
    a = NormalizedReport(road_id="1", major_name="M", minor_name="m", report_time=when, comment_id="c")
    b = NormalizedReport(road_id="1", major_name="M", minor_name="m", report_time=when, comment_id="c")
    assert a == b
    assert len({a, b}) == 1

def test_resolved_report_congestion_range():
    when = datetime(2016, 1, 2, 9, 15, tzinfo=timezone.utc)
    with pytest.raises(ValidationError):
        ResolvedReport(road_id="1", comment_id="c", report_time=when, congestion=6)
    with pytest.raises(ValidationError):
        ResolvedReport(road_id="1", comment_id="c", report_time=when, congestion=0)

def test_resolved_report_requires_minute_rounding():
    with pytest.raises(ValidationError):
        ResolvedReport(
            road_id="1", comment_id="c",
            report_time=datetime(2016, 1, 2, 9, 15, 30, tzinfo=timezone.utc), congestion=2
        )

# --- Analysis rows ---
def test_central_tendency_row_single_sample():
    row = CentralTendencyRow(
        road_id="1", is_weekend=False, hour_of_day=8, mean=3.0,
        median=3.0, mode=3, sample_size=1
    )
    assert row.variance is None
    assert row.stddev is None

def test_confidence_interval_row_needs_two_samples():
    with pytest.raises(ValidationError):
        ConfidenceIntervalRow(
            road_id="1", is_weekend=False, hour_of_day=8, mean=3.0,
            lower=3.0, upper=3.0, sample_size=1, degrees_of_freedom=0
        )

def test_hypothesis_result_p_value_bounds():
    with pytest.raises(ValidationError):
        HypothesisResult(
            test_family="weekend", road_id="1", hour_of_day=8,
            sample_size_a=30, sample_size_b=30, p_value=1.5, reject_null=False
        )
    result = HypothesisResult(
        test_family="weekend", road_id="1", hour_of_day=8,
        sample_size_a=30, sample_size_b=30, p_value=None, reject_null=False
    )
    assert result.paired_road_id is None
    assert result.is_weekend is None
