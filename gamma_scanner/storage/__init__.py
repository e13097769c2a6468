"""Report sinks for persisting ranked scan results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .base import CandidateSnapshot, RunMetadata, Storage, StorageError
from .json_report import JSONReportStorage
from .sqlite import SQLiteStorage

if TYPE_CHECKING:  # pragma: no cover
    from gamma_scanner.config.loader import AppSettings


def create_storage(settings: "AppSettings", backend: Optional[str] = None) -> Storage:
    """Instantiate the configured storage backend, optionally overriding its name."""

    storage_settings = settings.storage
    selected = (backend or storage_settings.backend).lower()
    if selected == "sqlite":
        return SQLiteStorage(storage_settings.sqlite.path, pragmas=storage_settings.sqlite.pragmas)
    if selected == "json":
        return JSONReportStorage(storage_settings.json_report.output_dir)
    raise StorageError(f"Unsupported storage backend '{selected}'")


__all__ = [
    "CandidateSnapshot",
    "JSONReportStorage",
    "RunMetadata",
    "SQLiteStorage",
    "Storage",
    "StorageError",
    "create_storage",
]
