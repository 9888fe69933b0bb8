import pytest
from datetime import datetime, timezone
from src.common.schemas.reports import CRAWL_TIME_FORMAT, ResolvedReport
from src.reports.domain import CongestionSeries


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def make_row():
    """Factory for raw crawl rows as the CSV source yields them."""
    def _make_row(
        crawl_time=utc(2016, 1, 5, 9, 20, 3),
        road_id="101",
        road_name="Ring Road;Maadi To Moneeb",
        status_id=3,
        hours=0,
        minutes=10,
        comment_id="c1",
        comment_text="mashy",
        **extra
    ):
        crawl = crawl_time.strftime(CRAWL_TIME_FORMAT) if isinstance(crawl_time, datetime) else crawl_time
        row = {
            "crawl_time": crawl,
            "road_id": road_id,
            "road_name_compound": road_name,
            "status_id": status_id,
            "road_status_id": 10,
            "report_relative_hours": hours,
            "report_relative_minutes": minutes,
            "road_update_relative_hours": 0,
            "road_update_relative_minutes": 5,
            "comment_id": comment_id,
            "comment_text": comment_text,
        }
        row.update(extra)
        return row
    return _make_row


@pytest.fixture
def make_series():
    """Factory for a CongestionSeries from (road_id, report_time, congestion) tuples."""
    def _make_series(entries):
        records = [
            ResolvedReport(road_id=road_id, comment_id=f"c{i}", report_time=when, congestion=congestion)
            for i, (road_id, when, congestion) in enumerate(entries)
        ]
        records.sort(key=lambda r: (r.report_time, r.road_id, r.comment_id))
        return CongestionSeries(tuple(records))
    return _make_series
