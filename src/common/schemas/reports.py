import math
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

CRAWL_TIME_FORMAT = "%a %b %d %H:%M:%S UTC %Y"


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _as_identifier(value):
    """Normalizes ids read from CSV (ints, floats like 12.0, strings) to str."""
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return str(value).strip()


class RawReport(BaseModel):
    """
    One crawl-time observation of a road report.
    Advertising and app-only columns are ignored at validation time.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    crawl_time: datetime = Field(..., description="Absolute UTC instant of the crawl")
    road_id: str = Field(..., description="Stable identifier of the road segment")
    road_name_compound: str = Field(..., description="Road name as 'major;minor'")
    status_id: Optional[int] = Field(None, description="Per-report type/score code")
    road_status_id: Optional[int] = Field(None, description="Road-level status snapshot")
    report_relative_hours: int = Field(..., ge=0, description="Hours between report and crawl")
    report_relative_minutes: int = Field(..., ge=0, description="Minutes between report and crawl")
    road_update_relative_hours: Optional[int] = Field(None, ge=0, description="Hours since road status update")
    road_update_relative_minutes: Optional[int] = Field(None, ge=0, description="Minutes since road status update")
    comment_id: str = Field(..., description="Identifier of the report comment")
    comment_text: Optional[str] = Field(None, description="Free text of the report")

    @field_validator('crawl_time', mode='before')
    @classmethod
    def decode_crawl_time(cls, v, info: ValidationInfo):
        if isinstance(v, datetime):
            return v if v.tzinfo else v.replace(tzinfo=timezone.utc)
        if not isinstance(v, str):
            raise ValueError(f'crawl_time must be a string, got {type(v).__name__}')
        fmt = CRAWL_TIME_FORMAT
        if info.context and info.context.get('crawl_time_format'):
            fmt = info.context['crawl_time_format']
        # strptime raises ValueError on non-conforming strings
        return datetime.strptime(v.strip(), fmt).replace(tzinfo=timezone.utc)

    @field_validator('road_id', 'comment_id', mode='before')
    @classmethod
    def coerce_identifier(cls, v):
        return _as_identifier(v)

    @field_validator('status_id', 'road_status_id', 'road_update_relative_hours',
                     'road_update_relative_minutes', 'comment_text', mode='before')
    @classmethod
    def missing_to_none(cls, v):
        return None if _is_missing(v) else v


class NormalizedReport(BaseModel):
    """
    A report with crawl-time fields stripped and an absolute report time.
    """
    model_config = ConfigDict(frozen=True)

    road_id: str = Field(..., description="Road segment id")
    major_name: str = Field(..., description="Major road name")
    minor_name: str = Field(..., description="Minor road name (direction/stretch)")
    report_time: datetime = Field(..., description="Minute-rounded UTC report time")
    status_id: Optional[int] = Field(None, description="Per-report type/score code")
    comment_id: str = Field(..., description="Identifier of the report comment")
    comment_text: Optional[str] = Field(None, description="Free text of the report")


class ResolvedReport(BaseModel):
    """
    A congestion report with a valid ordinal score.
    This is the row type of the congestion series.
    """
    model_config = ConfigDict(frozen=True)

    road_id: str = Field(..., description="Road segment id")
    comment_id: str = Field(..., description="Identifier of the report comment")
    report_time: datetime = Field(..., description="Minute-rounded UTC report time")
    congestion: int = Field(..., ge=1, le=5, description="1 = free flow, 5 = gridlock")

    @field_validator('report_time')
    @classmethod
    def report_time_on_minute(cls, v):
        if v.second or v.microsecond:
            raise ValueError('report_time must be rounded to the minute')
        return v


class CentralTendencyRow(BaseModel):
    """
    Summary statistics of congestion for one (road, weekend, hour) group.
    """
    road_id: str = Field(..., description="Road segment id")
    is_weekend: bool = Field(..., description="True if the group falls on weekend days")
    hour_of_day: int = Field(..., ge=0, le=23, description="Local hour of day")
    mean: float = Field(..., description="Mean congestion")
    variance: Optional[float] = Field(None, ge=0, description="Sample variance (undefined for n=1)")
    stddev: Optional[float] = Field(None, ge=0, description="Sample standard deviation (undefined for n=1)")
    median: float = Field(..., description="Median congestion")
    mode: int = Field(..., ge=1, le=5, description="Most frequent congestion value")
    sample_size: int = Field(..., ge=1, description="Number of reports in the group")


class ConfidenceIntervalRow(BaseModel):
    """
    Two-sided t-interval for the mean congestion of one group.
    """
    road_id: str = Field(..., description="Road segment id")
    is_weekend: bool = Field(..., description="True if the group falls on weekend days")
    hour_of_day: int = Field(..., ge=0, le=23, description="Local hour of day")
    mean: float = Field(..., description="Mean congestion")
    lower: float = Field(..., description="Lower bound of the interval")
    upper: float = Field(..., description="Upper bound of the interval")
    sample_size: int = Field(..., ge=2, description="Number of reports in the group")
    degrees_of_freedom: int = Field(..., ge=1, description="t-distribution degrees of freedom")


class HypothesisResult(BaseModel):
    """
    Outcome of one two-sample test cell.
    """
    test_family: str = Field(..., description="'direction' or 'weekend'")
    road_id: str = Field(..., description="Road (or first road of the pair)")
    paired_road_id: Optional[str] = Field(None, description="Opposite-direction road for the direction family")
    is_weekend: Optional[bool] = Field(None, description="Weekend flag of the cell (None when it is the compared factor)")
    hour_of_day: int = Field(..., ge=0, le=23, description="Local hour of day")
    sample_size_a: int = Field(..., ge=1, description="Samples on the first side")
    sample_size_b: int = Field(..., ge=1, description="Samples on the second side")
    p_value: Optional[float] = Field(None, ge=0, le=1, description="Welch t-test p-value (None if undefined)")
    reject_null: bool = Field(..., description="p_value below the significance level")
