"""Write each scan run to its own JSON report file."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .base import CandidateSnapshot, RunMetadata, Storage, StorageError
from .serialization import json_dumps

LOGGER = logging.getLogger("gamma_scanner.storage.json")

FILE_PREFIX = "gamma_scan_"


class JSONReportStorage(Storage):
    """One ``gamma_scan_<timestamp>.json`` file per run inside ``output_dir``."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    def _path_for(self, metadata: RunMetadata) -> Path:
        stamp = metadata.run_at.strftime("%Y%m%dT%H%M%S")
        return self.output_dir / f"{FILE_PREFIX}{stamp}_{metadata.run_id[:8]}.json"

    def _report_files(self) -> List[Path]:
        if not self.output_dir.exists():
            return []
        return sorted(self.output_dir.glob(f"{FILE_PREFIX}*.json"))

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Unable to read report {path}: {exc}") from exc

    def _find(self, run_id: str) -> Optional[Dict[str, Any]]:
        for path in self._report_files():
            payload = self._read(path)
            if payload.get("run_id") == run_id:
                return payload
        return None

    def save_run(self, metadata: RunMetadata, candidates: Sequence[CandidateSnapshot]) -> None:
        for path in self._report_files():
            if self._read(path).get("run_id") == metadata.run_id:
                path.unlink()
        payload = {
            "run_id": metadata.run_id,
            "run_at": metadata.run_at.isoformat(),
            "environment": metadata.environment,
            "watchlist": metadata.watchlist,
            "extra": dict(metadata.extra),
            "candidates": [snapshot.to_dict() for snapshot in candidates],
        }
        path = self._path_for(metadata)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json_dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to write report for run '{metadata.run_id}': {exc}") from exc
        LOGGER.info("Saved scan report to %s", path)

    def list_runs(self, limit: Optional[int] = None) -> List[RunMetadata]:
        runs = [self._to_metadata(self._read(path)) for path in self._report_files()]
        runs.sort(key=lambda item: item.run_at, reverse=True)
        return runs[:limit] if limit is not None else runs

    def get_metadata(self, run_id: str) -> Optional[RunMetadata]:
        payload = self._find(run_id)
        return self._to_metadata(payload) if payload else None

    def get_candidates(self, run_id: str) -> List[CandidateSnapshot]:
        payload = self._find(run_id)
        if not payload:
            return []
        return [
            CandidateSnapshot(
                rank=int(item["rank"]),
                symbol=item["symbol"],
                score=float(item["score"]),
                data=item.get("data", {}),
            )
            for item in payload.get("candidates", [])
        ]

    @staticmethod
    def _to_metadata(payload: Dict[str, Any]) -> RunMetadata:
        return RunMetadata(
            run_id=payload["run_id"],
            run_at=datetime.fromisoformat(payload["run_at"]),
            environment=payload.get("environment"),
            watchlist=payload.get("watchlist"),
            extra=payload.get("extra", {}),
        )


__all__ = ["JSONReportStorage"]
