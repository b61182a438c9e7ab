from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

import pandas as pd


class DurationUnit(str, Enum):
    NANOSECONDS = "ns"
    MICROSECONDS = "us"
    MILLISECONDS = "ms"
    SECONDS = "s"


@dataclass(frozen=True, slots=True)
class Measurement:
    query_id: str
    duration: float
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.query_id:
            msg = "Measurement query_id must be a non-empty string"
            raise ValueError(msg)
        if not math.isfinite(self.duration) or self.duration < 0:
            msg = f"Duration for {self.query_id!r} must be finite and non-negative, got {self.duration!r}"
            raise ValueError(msg)
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def __hash__(self) -> int:
        return hash((self.query_id, self.duration, frozenset(self.metadata.items())))


@dataclass(frozen=True, slots=True)
class ResultSet:
    """Measurements of one benchmark run, keyed by query id."""

    unit: DurationUnit
    measurements: Mapping[str, Measurement]

    def __post_init__(self) -> None:
        for query_id, measurement in self.measurements.items():
            if query_id != measurement.query_id:
                msg = f"Key {query_id!r} does not match measurement id {measurement.query_id!r}"
                raise ValueError(msg)
        object.__setattr__(self, "measurements", MappingProxyType(dict(self.measurements)))

    def __hash__(self) -> int:
        return hash((self.unit, frozenset(self.measurements.values())))

    @classmethod
    def from_measurements(
        cls,
        measurements: Iterable[Measurement],
        unit: DurationUnit = DurationUnit.SECONDS,
    ) -> ResultSet:
        by_id: dict[str, Measurement] = {}
        for measurement in measurements:
            if measurement.query_id in by_id:
                msg = f"Duplicate query id {measurement.query_id!r}"
                raise ValueError(msg)
            by_id[measurement.query_id] = measurement
        return cls(unit=unit, measurements=by_id)

    @classmethod
    def from_durations(
        cls,
        durations: Mapping[str, float],
        unit: DurationUnit = DurationUnit.SECONDS,
    ) -> ResultSet:
        return cls.from_measurements(
            (Measurement(query_id, float(duration)) for query_id, duration in durations.items()),
            unit=unit,
        )

    def __len__(self) -> int:
        return len(self.measurements)

    def __contains__(self, query_id: object) -> bool:
        return query_id in self.measurements

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self.measurements.values())

    def query_ids(self) -> frozenset[str]:
        return frozenset(self.measurements)

    def duration_of(self, query_id: str) -> float:
        return self.measurements[query_id].duration

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "query_id": pd.Series([m.query_id for m in self], dtype=object),
                "duration": pd.Series([m.duration for m in self], dtype=float),
            }
        )
