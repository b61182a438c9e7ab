from __future__ import annotations

from perfgate.analysis.aggregate import Summary, Verdict, aggregate
from perfgate.analysis.compare import Classification, ComparisonReport, Delta, compare

__all__ = [
    "Classification",
    "ComparisonReport",
    "Delta",
    "Summary",
    "Verdict",
    "aggregate",
    "compare",
]
