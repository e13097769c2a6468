"""Short interest and float lookups."""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

from gamma_scanner.models import ReferenceData

LOGGER = logging.getLogger("gamma_scanner.reference")

DEFAULT_REFERENCE_PATH = Path(__file__).resolve().parents[1] / "data" / "reference_data.csv"
DEFAULT_FLOAT_SHARES = 500_000_000

_Entry = Tuple[Optional[float], Optional[int]]


class ReferenceDataSource(ABC):
    """Symbol to short interest / float mapping refreshed out of band."""

    @abstractmethod
    def lookup(self, symbol: str) -> ReferenceData:
        """Return reference figures for ``symbol``; never raises for unknown symbols."""


class StaticReferenceTable(ReferenceDataSource):
    """In-memory reference table with documented defaults for missing symbols."""

    def __init__(
        self,
        entries: Mapping[str, _Entry],
        *,
        default_short_interest: float = 0.0,
        default_float: int = DEFAULT_FLOAT_SHARES,
    ):
        self._entries: Dict[str, _Entry] = {key.strip().upper(): value for key, value in entries.items()}
        self.default_short_interest = float(default_short_interest)
        self.default_float = int(default_float)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: object) -> bool:
        return str(symbol).strip().upper() in self._entries

    def lookup(self, symbol: str) -> ReferenceData:
        key = symbol.strip().upper()
        entry = self._entries.get(key)
        if entry is None:
            LOGGER.debug("No reference data for %s; using defaults", key)
            return ReferenceData(
                short_interest_percent=self.default_short_interest,
                float_shares=self.default_float,
                is_default=True,
            )
        short_interest, float_shares = entry
        return ReferenceData(
            short_interest_percent=self.default_short_interest if short_interest is None else float(short_interest),
            float_shares=self.default_float if float_shares is None else int(float_shares),
            is_default=False,
        )


def _cell(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    text = value.strip().replace(",", "")
    if not text:
        return None
    return float(text)


def load_reference_table(
    path: Union[str, Path, None] = None,
    *,
    default_short_interest: float = 0.0,
    default_float: int = DEFAULT_FLOAT_SHARES,
) -> StaticReferenceTable:
    """Load a ``symbol,short_interest_percent,float_shares`` CSV.

    Blank cells fall back to the table defaults. A malformed number raises
    ``ValueError`` with the offending line.
    """

    csv_path = Path(path) if path else DEFAULT_REFERENCE_PATH
    entries: Dict[str, _Entry] = {}
    with csv_path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        for line_number, row in enumerate(reader, start=2):
            symbol = (row.get("symbol") or "").strip().upper()
            if not symbol:
                continue
            try:
                short_interest = _cell(row.get("short_interest_percent"))
                float_value = _cell(row.get("float_shares"))
            except ValueError as exc:
                raise ValueError(f"{csv_path}:{line_number}: invalid reference row for {symbol}: {exc}") from exc
            entries[symbol] = (short_interest, int(float_value) if float_value is not None else None)
    LOGGER.debug("Loaded %d reference rows from %s", len(entries), csv_path)
    return StaticReferenceTable(
        entries,
        default_short_interest=default_short_interest,
        default_float=default_float,
    )


__all__ = [
    "DEFAULT_FLOAT_SHARES",
    "DEFAULT_REFERENCE_PATH",
    "ReferenceDataSource",
    "StaticReferenceTable",
    "load_reference_table",
]
