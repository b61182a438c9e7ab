from __future__ import annotations

from perfgate.results.loader import load_result_set, parse_result_set
from perfgate.results.models import DurationUnit, Measurement, ResultSet

__all__ = ["DurationUnit", "Measurement", "ResultSet", "load_result_set", "parse_result_set"]
