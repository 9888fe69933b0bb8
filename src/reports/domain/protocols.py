"""
Domain protocols for the report reconstruction pipeline.
"""
from typing import Any, Iterator, Mapping, Protocol

class ReportSource(Protocol):
    """
    Ordered source of raw report rows (field name -> value).
    Malformed rows are yielded as-is; the normalizer rejects them.
    """
    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        ...
