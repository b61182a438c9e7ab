from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

from perfgate.errors import LoadError
from perfgate.results.models import DurationUnit, Measurement, ResultSet

logger = logging.getLogger(__name__)

_ID_KEYS = ("query_id", "query", "name")


def load_result_set(path: Path | str, unit: DurationUnit | str | None = None) -> ResultSet:
    """Read a JSON benchmark report from ``path``.

    Raises :class:`LoadError` for a missing file, invalid JSON or any
    malformed entry. Nothing is skipped: a partially read report would turn
    the dropped queries into spurious ADDED/REMOVED classifications.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read result document {path}: {exc}"
        raise LoadError(msg) from exc
    try:
        document = json.loads(text, object_pairs_hook=_unique_keys(str(path)))
    except json.JSONDecodeError as exc:
        msg = f"Result document {path} is not valid JSON: {exc}"
        raise LoadError(msg) from exc
    result_set = parse_result_set(document, unit=unit, source=str(path))
    logger.debug("Loaded %d measurements (%s) from %s", len(result_set), result_set.unit.value, path)
    return result_set


def parse_result_set(
    document: Any,
    unit: DurationUnit | str | None = None,
    source: str = "<document>",
) -> ResultSet:
    if not isinstance(document, Mapping):
        msg = f"{source}: expected a JSON object at the top level, got {type(document).__name__}"
        raise LoadError(msg)
    if "benchmarks" in document:
        entries = _pytest_benchmark_entries(document["benchmarks"], source)
        declared = "s"
    elif "queries" in document:
        entries = _mapping_entries(document["queries"], source)
        declared = document.get("unit")
    elif "results" in document:
        entries = _list_entries(document["results"], source)
        declared = document.get("unit")
    else:
        entries = _mapping_entries({k: v for k, v in document.items() if k != "unit"}, source)
        declared = document.get("unit")
    resolved = _pick_unit(declared, unit, source)

    measurements: dict[str, Measurement] = {}
    for query_id, duration, metadata in entries:
        if query_id in measurements:
            msg = f"{source}: duplicate query id {query_id!r}"
            raise LoadError(msg)
        measurements[query_id] = Measurement(query_id, duration, metadata)
    return ResultSet(unit=resolved, measurements=measurements)


def _unique_keys(source: str) -> Callable[[list[tuple[str, Any]]], dict[str, Any]]:
    def hook(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
        obj: dict[str, Any] = {}
        for key, value in pairs:
            if key in obj:
                msg = f"{source}: duplicate key {key!r}"
                raise LoadError(msg)
            obj[key] = value
        return obj

    return hook


def _pick_unit(declared: Any, override: DurationUnit | str | None, source: str) -> DurationUnit:
    """``override`` fills in a missing unit and must agree with a declared one."""
    if declared is None:
        return _resolve_unit("s" if override is None else override, source)
    resolved = _resolve_unit(declared, source)
    requested = None if override is None else _resolve_unit(override, source)
    if requested is not None and requested is not resolved:
        msg = f"{source}: declares unit {resolved.value!r} but {requested.value!r} was requested"
        raise LoadError(msg)
    return resolved


def _resolve_unit(value: Any, source: str) -> DurationUnit:
    if isinstance(value, DurationUnit):
        return value
    try:
        return DurationUnit(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(u.value for u in DurationUnit)
        msg = f"{source}: unknown duration unit {value!r} (expected one of {allowed})"
        raise LoadError(msg) from exc


def _mapping_entries(queries: Any, source: str) -> Iterator[tuple[str, float, dict[str, str]]]:
    if not isinstance(queries, Mapping):
        msg = f"{source}: 'queries' must be an object keyed by query id"
        raise LoadError(msg)
    for query_id, value in queries.items():
        if isinstance(value, Mapping):
            if "duration" not in value:
                msg = f"{source}: query {query_id!r} has no 'duration'"
                raise LoadError(msg)
            yield (
                _query_id(query_id, source),
                _duration(value["duration"], query_id, source),
                _metadata(value.get("metadata"), query_id, source),
            )
        else:
            yield _query_id(query_id, source), _duration(value, query_id, source), {}


def _list_entries(results: Any, source: str) -> Iterator[tuple[str, float, dict[str, str]]]:
    if not isinstance(results, list):
        msg = f"{source}: 'results' must be a list"
        raise LoadError(msg)
    for index, entry in enumerate(results):
        if not isinstance(entry, Mapping):
            msg = f"{source}: result #{index} is not an object"
            raise LoadError(msg)
        raw_id = next((entry[key] for key in _ID_KEYS if key in entry), None)
        if raw_id is None:
            msg = f"{source}: result #{index} has no query id ({', '.join(_ID_KEYS)})"
            raise LoadError(msg)
        query_id = _query_id(raw_id, source)
        if "duration" not in entry:
            msg = f"{source}: query {query_id!r} has no 'duration'"
            raise LoadError(msg)
        yield (
            query_id,
            _duration(entry["duration"], query_id, source),
            _metadata(entry.get("metadata"), query_id, source),
        )


def _pytest_benchmark_entries(benchmarks: Any, source: str) -> Iterator[tuple[str, float, dict[str, str]]]:
    if not isinstance(benchmarks, list):
        msg = f"{source}: 'benchmarks' must be a list"
        raise LoadError(msg)
    for index, bench in enumerate(benchmarks):
        if not isinstance(bench, Mapping) or "name" not in bench:
            msg = f"{source}: benchmark #{index} has no 'name'"
            raise LoadError(msg)
        query_id = _query_id(bench["name"], source)
        stats = bench.get("stats")
        if not isinstance(stats, Mapping) or "mean" not in stats:
            msg = f"{source}: benchmark {query_id!r} has no 'stats.mean'"
            raise LoadError(msg)
        metadata = {key: str(bench[key]) for key in ("group", "fullname") if bench.get(key) is not None}
        yield query_id, _duration(stats["mean"], query_id, source), metadata


def _query_id(value: Any, source: str) -> str:
    if not isinstance(value, str) or not value:
        msg = f"{source}: query id must be a non-empty string, got {value!r}"
        raise LoadError(msg)
    if not value.isprintable():
        msg = f"{source}: query id {value!r} contains control characters"
        raise LoadError(msg)
    return value


def _duration(value: Any, query_id: str, source: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{source}: duration of {query_id!r} must be a number, got {value!r}"
        raise LoadError(msg)
    try:
        duration = float(value)
    except OverflowError as exc:
        msg = f"{source}: duration of {query_id!r} is too large, got {value!r}"
        raise LoadError(msg) from exc
    if not math.isfinite(duration) or duration < 0:
        msg = f"{source}: duration of {query_id!r} must be finite and non-negative, got {value!r}"
        raise LoadError(msg)
    return duration


def _metadata(value: Any, query_id: str, source: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        msg = f"{source}: metadata of {query_id!r} must be an object"
        raise LoadError(msg)
    return {str(key): str(item) for key, item in value.items()}

