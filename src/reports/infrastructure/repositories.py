import os
import logging
import pandas as pd
from ..domain import SeriesRepository, CongestionSeries

logger = logging.getLogger(__name__)

class CSVSeriesRepository(SeriesRepository):
    """
    Writes the congestion series and derived tables as CSV files.
    """
    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        os.makedirs(self.output_dir, exist_ok=True)

    def _get_filename(self, name: str) -> str:
        if not name.endswith(".csv"):
            name += ".csv"
        return os.path.join(self.output_dir, name)

    def save_series(self, series: CongestionSeries, name: str = "congestion_series") -> str:
        frame = series.to_frame()
        frame["report_time"] = frame["report_time"].dt.strftime("%Y-%m-%d %H:%M:%S%z")
        return self.save_table(name, frame)

    def save_table(self, name: str, table: pd.DataFrame, index: bool = False) -> str:
        filename = self._get_filename(name)
        table.to_csv(filename, index=index)
        logger.info(f"Saved {len(table)} rows to {filename}")
        return filename
