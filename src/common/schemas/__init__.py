from .reports import (
    RawReport, NormalizedReport, ResolvedReport,
    CentralTendencyRow, ConfidenceIntervalRow, HypothesisResult
)

__all__ = [
    "RawReport",
    "NormalizedReport",
    "ResolvedReport",
    "CentralTendencyRow",
    "ConfidenceIntervalRow",
    "HypothesisResult",
]
