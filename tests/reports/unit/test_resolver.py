import pytest
from datetime import datetime, timezone
from src.common.exceptions import UnresolvedCongestion
from src.common.metrics import AuditCollector
from src.common.schemas.reports import NormalizedReport
from src.reports.application.resolver import CongestionResolver, extract_speed, speed_to_congestion
from src.reports.domain import NormalizedBatch, ReportCategory, ReportTypeCodes, RoadIdentity

WHEN = datetime(2016, 1, 5, 9, 10, tzinfo=timezone.utc)

def report(status_id, text="mashy", comment_id="c1"):
    return NormalizedReport(
        road_id="101", major_name="Ring Road", minor_name="Maadi To Moneeb",
        report_time=WHEN, status_id=status_id, comment_id=comment_id, comment_text=text,
    )

def batch_of(*reports):
    return NormalizedBatch(
        reports=tuple(reports),
        identity=RoadIdentity({"101": ("Ring Road", "Maadi To Moneeb")}),
    )

# --- Speed extraction ---
@pytest.mark.parametrize("text,expected", [
    ("[GPS] 60 km/h", 60),
    ("Bey2ollak GPS: 45km/h", 45),
    ("moving at 100 KM/H", 100),
    ("30 kph", 30),
    ("25 km / hr", 25),
    ("12.5 kmh", 12),
    ("exit 9 then 60 km/h", 60),
    ("السرعة 45 كم/س", 45),
    ("٤٥ كم/ساعة تقريبا", 45),
    ("zahma gedan", None),
    ("5 km away", None),
    ("", None),
    (None, None),
])
def test_extract_speed(text, expected):
    assert extract_speed(text) == expected

@pytest.mark.parametrize("speed,expected", [
    (120, 1), (80, 1), (79, 2), (40, 2), (39, 3),
    (20, 3), (19, 4), (10, 4), (9, 5), (0, 5),
])
def test_speed_breakpoints(speed, expected):
    assert speed_to_congestion(speed) == expected

def test_custom_breakpoints():
    breakpoints = [(50, 1), (10, 3)]
    assert speed_to_congestion(51, breakpoints, slowest=5) == 1
    assert speed_to_congestion(50, breakpoints, slowest=5) == 3
    assert speed_to_congestion(10, breakpoints, slowest=5) == 5

# --- Status codes ---
@pytest.mark.parametrize("status_id,category", [
    (1, ReportCategory.CONGESTION),
    (5, ReportCategory.CONGESTION),
    (6, ReportCategory.QUESTION),
    (8, ReportCategory.INCIDENT),
    (10, ReportCategory.FREE_TEXT),
    (None, ReportCategory.FREE_TEXT),
    (42, ReportCategory.UNKNOWN),
])
def test_categorize(status_id, category):
    assert ReportTypeCodes().categorize(status_id) is category

def test_overlapping_codes_rejected():
    with pytest.raises(ValueError):
        ReportTypeCodes(question=frozenset({5}))

def test_congestion_codes_must_be_ordinal_scale():
    codes = ReportTypeCodes(congestion=frozenset({1, 2, 3, 4, 5, 6}), question=frozenset())
    with pytest.raises(ValueError):
        CongestionResolver(codes=codes)

# --- Single report ---
def test_congestion_report_untouched():
    resolved, recovered = CongestionResolver().resolve_report(report(4))
    assert resolved.congestion == 4
    assert not recovered
    assert resolved.report_time == WHEN
    assert resolved.comment_id == "c1"

def test_valid_score_ignores_quoted_speed():
    resolved, recovered = CongestionResolver().resolve_report(report(5, text="90 km/h"))
    assert resolved.congestion == 5
    assert not recovered

def test_free_text_recovers_score():
    resolved, recovered = CongestionResolver().resolve_report(report(10, text="[GPS] 35 km/h"))
    assert resolved.congestion == 3
    assert recovered

def test_free_text_without_speed():
    with pytest.raises(UnresolvedCongestion):
        CongestionResolver().resolve_report(report(10, text="zahma gedan"))

def test_question_is_not_resolvable():
    with pytest.raises(ValueError):
        CongestionResolver().resolve_report(report(6))

# --- Batch ---
def test_resolve_batch_counts_every_drop():
    batch = batch_of(
        report(3, comment_id="c1"),
        report(10, text="60 km/h", comment_id="c2"),
        report(None, text="5 km/h", comment_id="c3"),
        report(10, text="7alawa", comment_id="c4"),
        report(6, comment_id="c5"),
        report(8, comment_id="c6"),
        report(42, comment_id="c7"),
    )
    audit = AuditCollector()
    resolved = CongestionResolver().resolve(batch, audit=audit)

    assert [(r.comment_id, r.congestion) for r in resolved.reports] == [("c1", 3), ("c2", 2), ("c3", 5)]
    assert resolved.identity is batch.identity

    summary = audit.get_summary()
    assert summary.congestion_reports == 1
    assert summary.free_text_reports == 3
    assert summary.recovered_from_text == 2
    assert summary.dropped_unresolved == 1
    assert summary.question_reports == 1
    assert summary.incident_reports == 1
    assert summary.unknown_type_reports == 1
    assert len(audit.diagnostics) == 2

def test_resolve_preserves_order():
    batch = batch_of(*(report(s, comment_id=f"c{i}") for i, s in enumerate([5, 1, 3])))
    resolved = CongestionResolver().resolve(batch)
    assert [r.congestion for r in resolved.reports] == [5, 1, 3]
