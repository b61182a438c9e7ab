from __future__ import annotations

from pathlib import Path

from perfgate.storage.duckdb_store import Storage


def default_storage() -> Storage:
    return Storage(Path(".perfgate/perfgate.duckdb"))


__all__ = ["Storage", "default_storage"]
