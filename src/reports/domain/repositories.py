"""
Domain repositories for the report reconstruction pipeline.
"""
from typing import Protocol
import pandas as pd
from .entities import CongestionSeries

class SeriesRepository(Protocol):
    """
    Export target for the congestion series and derived tables.
    """
    def save_series(self, series: CongestionSeries) -> str:
        ...

    def save_table(self, name: str, table: pd.DataFrame) -> str:
        ...
