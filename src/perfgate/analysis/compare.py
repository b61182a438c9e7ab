from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

import numpy as np
import pandas as pd

from perfgate.config.models import validate_tolerance
from perfgate.errors import ConfigurationError
from perfgate.results import DurationUnit, ResultSet


class Classification(str, Enum):
    IMPROVED = "improved"
    UNCHANGED = "unchanged"
    REGRESSED = "regressed"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class Delta:
    query_id: str
    baseline_duration: float | None
    current_duration: float | None
    ratio: float | None  # None when undefined: ADDED, REMOVED or 0/0
    classification: Classification

    @property
    def change_pct(self) -> float | None:
        if self.ratio is None:
            return None
        return (self.ratio - 1.0) * 100

    @property
    def is_degenerate(self) -> bool:
        return self.baseline_duration == 0.0 and self.current_duration is not None


@dataclass(frozen=True, slots=True)
class ComparisonReport:
    deltas: tuple[Delta, ...]
    regressed_queries: frozenset[str]
    tolerance: float
    unit: DurationUnit

    @property
    def has_regression(self) -> bool:
        return bool(self.regressed_queries)

    def counts(self) -> Mapping[Classification, int]:
        tally = Counter(delta.classification for delta in self.deltas)
        return {classification: tally.get(classification, 0) for classification in Classification}

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "query_id": d.query_id,
                    "baseline_duration": d.baseline_duration,
                    "current_duration": d.current_duration,
                    "ratio": d.ratio,
                    "classification": d.classification.value,
                }
                for d in self.deltas
            ],
            columns=["query_id", "baseline_duration", "current_duration", "ratio", "classification"],
        )


def compare(baseline: ResultSet, current: ResultSet, tolerance: float) -> ComparisonReport:
    """Classify every query of either run against ``tolerance``.

    ``ratio = current / baseline``. A query is REGRESSED above ``1 + tolerance``
    and IMPROVED below ``1 - tolerance``. A zero baseline is REGRESSED when the
    current duration is positive and UNCHANGED otherwise. Queries present on
    one side only are ADDED or REMOVED. Deltas are sorted by query id.
    """
    tolerance = validate_tolerance(tolerance)
    if baseline.unit is not current.unit:
        msg = (
            f"Cannot compare durations in {baseline.unit.value!r} (baseline) "
            f"with {current.unit.value!r} (current)"
        )
        raise ConfigurationError(msg)

    merged = baseline.to_frame().merge(
        current.to_frame(),
        on="query_id",
        how="outer",
        suffixes=("_base", "_cand"),
        indicator=True,
    )
    merged = merged.sort_values("query_id", kind="mergesort").reset_index(drop=True)

    base = merged["duration_base"].to_numpy(dtype=float)
    cand = merged["duration_cand"].to_numpy(dtype=float)
    side = merged["_merge"].astype(str).to_numpy()
    only_base = side == "left_only"
    only_cand = side == "right_only"
    zero_base = (side == "both") & (base == 0)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = cand / base
        labels = np.select(
            [
                only_base,
                only_cand,
                zero_base & (cand > 0),
                zero_base,
                ratio > 1.0 + tolerance,
                ratio < 1.0 - tolerance,
            ],
            [
                Classification.REMOVED.value,
                Classification.ADDED.value,
                Classification.REGRESSED.value,
                Classification.UNCHANGED.value,
                Classification.REGRESSED.value,
                Classification.IMPROVED.value,
            ],
            default=Classification.UNCHANGED.value,
        )

    deltas = tuple(
        Delta(
            query_id=str(query_id),
            baseline_duration=_optional(b),
            current_duration=_optional(c),
            ratio=_optional(r),
            classification=Classification(label),
        )
        for query_id, b, c, r, label in zip(merged["query_id"], base, cand, ratio, labels)
    )
    regressed = frozenset(d.query_id for d in deltas if d.classification is Classification.REGRESSED)
    return ComparisonReport(deltas=deltas, regressed_queries=regressed, tolerance=tolerance, unit=current.unit)


def _optional(value: float) -> float | None:
    value = float(value)
    if math.isnan(value):
        return None
    return value
