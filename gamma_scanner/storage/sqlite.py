"""SQLite-backed storage for scan runs."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from .base import CandidateSnapshot, RunMetadata, Storage, StorageError
from .serialization import json_dumps, json_loads

_SCHEMA = """
CREATE TABLE IF NOT EXISTS metadata (
    run_id TEXT PRIMARY KEY,
    run_at TEXT NOT NULL,
    environment TEXT,
    watchlist TEXT,
    extra TEXT
);

CREATE TABLE IF NOT EXISTS candidates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT NOT NULL,
    rank INTEGER NOT NULL,
    symbol TEXT NOT NULL,
    score REAL NOT NULL,
    data TEXT NOT NULL,
    FOREIGN KEY(run_id) REFERENCES metadata(run_id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_candidates_run ON candidates(run_id, rank);
"""


class SQLiteStorage(Storage):
    """Persist scan runs in a local SQLite database; re-saving a run id replaces it."""

    def __init__(
        self,
        database: str | Path,
        pragmas: Optional[Mapping[str, Any]] = None,
        *,
        uri: bool = False,
    ) -> None:
        self._database = str(database)
        self._uri = uri
        self._pragmas = dict(pragmas or {})
        if not uri and self._database != ":memory:":
            Path(self._database).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._database, uri=self._uri)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        for key, value in self._pragmas.items():
            conn.execute(f"PRAGMA {key}={value};")
        return conn

    def _ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.executescript(_SCHEMA)
        except sqlite3.DatabaseError as exc:
            raise StorageError(f"Unable to initialise database at {self._database}: {exc}") from exc

    def save_run(self, metadata: RunMetadata, candidates: Sequence[CandidateSnapshot]) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO metadata(run_id, run_at, environment, watchlist, extra)
                    VALUES(?, ?, ?, ?, ?)
                    ON CONFLICT(run_id) DO UPDATE SET
                        run_at=excluded.run_at,
                        environment=excluded.environment,
                        watchlist=excluded.watchlist,
                        extra=excluded.extra
                    """,
                    (
                        metadata.run_id,
                        metadata.run_at.isoformat(),
                        metadata.environment,
                        metadata.watchlist,
                        json_dumps(metadata.extra),
                    ),
                )
                conn.execute("DELETE FROM candidates WHERE run_id = ?", (metadata.run_id,))
                rows = [
                    (
                        metadata.run_id,
                        snapshot.rank,
                        snapshot.symbol,
                        float(snapshot.score),
                        json_dumps(snapshot.data),
                    )
                    for snapshot in candidates
                ]
                if rows:
                    conn.executemany(
                        "INSERT INTO candidates(run_id, rank, symbol, score, data) VALUES(?, ?, ?, ?, ?)",
                        rows,
                    )
        except sqlite3.DatabaseError as exc:
            raise StorageError(f"Failed to persist run '{metadata.run_id}': {exc}") from exc

    def _fetch(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            with self._connect() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except sqlite3.DatabaseError as exc:
            raise StorageError(f"Failed to read from {self._database}: {exc}") from exc

    def list_runs(self, limit: Optional[int] = None) -> List[RunMetadata]:
        query = "SELECT run_id, run_at, environment, watchlist, extra FROM metadata ORDER BY run_at DESC"
        if limit is not None:
            query += " LIMIT ?"
        rows = self._fetch(query, (limit,) if limit is not None else ())
        return [self._row_to_metadata(row) for row in rows]

    def get_metadata(self, run_id: str) -> Optional[RunMetadata]:
        rows = self._fetch(
            "SELECT run_id, run_at, environment, watchlist, extra FROM metadata WHERE run_id = ?",
            (run_id,),
        )
        return self._row_to_metadata(rows[0]) if rows else None

    def get_candidates(self, run_id: str) -> List[CandidateSnapshot]:
        rows = self._fetch(
            "SELECT rank, symbol, score, data FROM candidates WHERE run_id = ? ORDER BY rank ASC, id ASC",
            (run_id,),
        )
        return [
            CandidateSnapshot(
                rank=int(row["rank"]),
                symbol=row["symbol"],
                score=float(row["score"]),
                data=json_loads(row["data"]),
            )
            for row in rows
        ]

    def _row_to_metadata(self, row: sqlite3.Row) -> RunMetadata:
        return RunMetadata(
            run_id=row["run_id"],
            run_at=datetime.fromisoformat(row["run_at"]),
            environment=row["environment"],
            watchlist=row["watchlist"],
            extra=json_loads(row["extra"]),
        )


__all__ = ["SQLiteStorage"]
