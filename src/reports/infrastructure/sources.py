import logging
import os
from typing import Any, Dict, Iterator, Mapping, Optional

import pandas as pd

from ..domain.protocols import ReportSource

logger = logging.getLogger(__name__)

class CSVReportSource(ReportSource):
    """
    Reads the raw crawl export with pandas.
    Columns are renamed to RawReport field names; rows are not pre-filtered.
    """
    def __init__(self, path: str, columns: Optional[Mapping[str, str]] = None, encoding: str = "utf-8"):
        self.path = path
        self.columns = dict(columns or {})
        self.encoding = encoding

    def read_frame(self) -> pd.DataFrame:
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Report file not found: {self.path}")
        # Read everything as text so ids and timestamps reach the validator untouched
        frame = pd.read_csv(self.path, dtype=str, encoding=self.encoding)
        missing = [c for c in self.columns if c not in frame.columns]
        if missing:
            logger.warning(f"Columns not present in {self.path}: {missing}")
        return frame.rename(columns=self.columns)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        frame = self.read_frame()
        logger.info(f"Loaded {len(frame)} raw rows from {self.path}")
        for row in frame.to_dict(orient="records"):
            yield row
