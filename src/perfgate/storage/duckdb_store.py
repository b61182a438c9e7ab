from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import duckdb
import pandas as pd

from perfgate.errors import LoadError
from perfgate.results import DurationUnit, Measurement, ResultSet


@dataclass(slots=True)
class Storage:
    db_path: Path

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.db_path))

    def _init_schema(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS run_meta (
                    run_id TEXT PRIMARY KEY,
                    created_at TIMESTAMP,
                    unit TEXT,
                    notes TEXT
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS measurements (
                    run_id TEXT,
                    query_id TEXT,
                    duration DOUBLE,
                    metadata_json TEXT
                );
                """
            )

    def run_exists(self, run_id: str) -> bool:
        with self._connect() as con:
            result = con.execute(
                "SELECT COUNT(*) FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            return bool(result and result[0] > 0)

    def save_result_set(self, run_id: str, result_set: ResultSet, notes: str = "") -> None:
        if self.run_exists(run_id):
            msg = f"Run {run_id} already exists"
            raise ValueError(msg)
        with self._connect() as con:
            con.execute(
                "INSERT INTO run_meta VALUES (?, ?, ?, ?)",
                [run_id, datetime.now(timezone.utc), result_set.unit.value, notes],
            )
            measurements_df = pd.DataFrame(
                [
                    {
                        "run_id": run_id,
                        "query_id": m.query_id,
                        "duration": m.duration,
                        "metadata_json": json.dumps(dict(m.metadata), sort_keys=True),
                    }
                    for m in result_set
                ],
                columns=["run_id", "query_id", "duration", "metadata_json"],
            )
            if not measurements_df.empty:
                con.execute("INSERT INTO measurements SELECT * FROM measurements_df")

    def list_runs(self) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                "SELECT run_id, created_at, unit, notes FROM run_meta ORDER BY created_at DESC"
            ).fetchdf()

    def load_result_set(self, run_id: str) -> ResultSet:
        with self._connect() as con:
            row = con.execute(
                "SELECT unit FROM run_meta WHERE run_id = ?",
                [run_id],
            ).fetchone()
            if not row:
                msg = f"Run {run_id} not found in {self.db_path}"
                raise LoadError(msg)
            rows = con.execute(
                "SELECT query_id, duration, metadata_json FROM measurements WHERE run_id = ? ORDER BY query_id",
                [run_id],
            ).fetchall()
        return ResultSet.from_measurements(
            (Measurement(query_id, float(duration), json.loads(meta)) for query_id, duration, meta in rows),
            unit=DurationUnit(row[0]),
        )
