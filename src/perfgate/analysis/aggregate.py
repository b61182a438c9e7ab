from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from perfgate.analysis.compare import Classification, ComparisonReport


class Verdict(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


@dataclass(frozen=True, slots=True)
class Summary:
    regressed_queries: tuple[str, ...]
    verdict: Verdict
    counts: Mapping[Classification, int] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASS

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "verdict": self.verdict.value,
            "has_regression": not self.passed,
            "regressed_queries": list(self.regressed_queries),
            "counts": {c.value: n for c, n in self.counts.items()},
        }


def aggregate(report: ComparisonReport) -> Summary:
    regressed = tuple(d.query_id for d in report.deltas if d.query_id in report.regressed_queries)
    verdict = Verdict.FAIL if report.has_regression else Verdict.PASS
    return Summary(regressed_queries=regressed, verdict=verdict, counts=report.counts())
