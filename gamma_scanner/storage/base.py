"""Base definitions for scan report sinks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence


class StorageError(RuntimeError):
    """Raised when a storage backend encounters an unrecoverable error."""


@dataclass(frozen=True)
class RunMetadata:
    """Metadata describing a single scan run.

    ``extra`` carries the full parameter dump and the per-stage counts so a
    stored run is enough to reproduce each filter and score decision.
    """

    run_id: str
    run_at: datetime
    environment: Optional[str] = None
    watchlist: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CandidateSnapshot:
    """One ranked candidate as it was scored in a run."""

    rank: int
    symbol: str
    score: float
    data: Mapping[str, Any]

    @classmethod
    def from_record(cls, rank: int, record: Mapping[str, Any]) -> "CandidateSnapshot":
        return cls(rank=rank, symbol=str(record["symbol"]), score=float(record["score"]), data=dict(record))

    def to_dict(self) -> Dict[str, Any]:
        return {"rank": self.rank, "symbol": self.symbol, "score": self.score, "data": dict(self.data)}


class Storage(ABC):
    """Abstract base class for persistence backends."""

    @abstractmethod
    def save_run(self, metadata: RunMetadata, candidates: Sequence[CandidateSnapshot]) -> None:
        """Persist a full scan run."""

    @abstractmethod
    def list_runs(self, limit: Optional[int] = None) -> List[RunMetadata]:
        """Return stored run metadata sorted from newest to oldest."""

    @abstractmethod
    def get_metadata(self, run_id: str) -> Optional[RunMetadata]:
        """Fetch metadata for a given run identifier."""

    @abstractmethod
    def get_candidates(self, run_id: str) -> List[CandidateSnapshot]:
        """Return ranked candidates for a run in rank order."""


__all__ = [
    "CandidateSnapshot",
    "RunMetadata",
    "Storage",
    "StorageError",
]
