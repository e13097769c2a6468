"""Ticker universe for a scan run."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from gamma_scanner.config.loader import AppSettings


def normalize_symbol(symbol: object) -> str:
    return str(symbol or "").strip().upper()


class UniverseRegistry:
    """Ordered, duplicate-free collection of symbols.

    Deduplication happens once at construction so a symbol is never fetched
    twice within a run.
    """

    def __init__(self, symbols: Tuple[str, ...]):
        self._symbols = symbols

    @classmethod
    def from_symbols(cls, symbols: Iterable[object]) -> "UniverseRegistry":
        seen = set()
        ordered = []
        for raw in symbols:
            symbol = normalize_symbol(raw)
            if not symbol or symbol in seen:
                continue
            seen.add(symbol)
            ordered.append(symbol)
        return cls(tuple(ordered))

    @classmethod
    def from_settings(cls, settings: "AppSettings", watchlist: str = "default") -> "UniverseRegistry":
        return cls.from_symbols(settings.get_watchlist(watchlist))

    @property
    def symbols(self) -> Tuple[str, ...]:
        return self._symbols

    def __iter__(self) -> Iterator[str]:
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, symbol: object) -> bool:
        return normalize_symbol(symbol) in self._symbols

    def __repr__(self) -> str:
        return f"UniverseRegistry({len(self._symbols)} symbols)"


__all__ = ["UniverseRegistry", "normalize_symbol"]
