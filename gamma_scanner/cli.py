"""Command line interface for the gamma scanner."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from .config import AppSettings, ConfigurationError, get_settings
from .scanner.pipeline import GammaScanner
from .storage import Storage, StorageError, create_storage

LOG_DIR = Path("logs/gamma_scanner")

LOGGER = logging.getLogger("gamma_scanner.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan for gap-down consolidation setups with cheap options")
    parser.add_argument("--env", type=str, default=None, help="Configuration environment (defaults to $APP_ENV or dev)")
    parser.add_argument(
        "--tickers",
        type=str,
        default="",
        help="Comma separated tickers to scan (defaults to the configured watchlist)",
    )
    parser.add_argument("--watchlist", type=str, default="default", help="Watchlist name, or 'all'")
    parser.add_argument("--top", type=int, default=None, help="Number of ranked candidates to display")
    parser.add_argument("--delay", type=float, default=None, help="Seconds to wait between symbols")
    parser.add_argument("--no-save", action="store_true", help="Do not persist the run")
    parser.add_argument(
        "--storage",
        choices=["sqlite", "json"],
        default=None,
        help="Override the configured storage backend",
    )
    parser.add_argument("--list-runs", type=int, metavar="N", default=None, help="Show the N most recent stored runs")
    return parser


def _configure_logging() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(LOG_DIR / "scan.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("gamma_scanner")
    if not any(isinstance(existing, logging.FileHandler) for existing in root.handlers):
        root.setLevel(logging.INFO)
        root.addHandler(handler)
    logging.basicConfig(level=logging.INFO)


def _tokenize_tickers(raw: str) -> Sequence[str]:
    if not raw:
        return []
    return [token.strip().upper() for token in raw.split(",") if token.strip()]


def _apply_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    scan_updates = {}
    if args.top is not None:
        if args.top < 1:
            raise ConfigurationError("--top must be at least 1")
        scan_updates["top_n"] = args.top
    if args.delay is not None:
        if args.delay < 0:
            raise ConfigurationError("--delay must not be negative")
        scan_updates["request_delay_seconds"] = args.delay
    if not scan_updates:
        return settings
    return settings.model_copy(update={"scan": settings.scan.model_copy(update=scan_updates)})


def _print_runs(storage: Storage, limit: int) -> None:
    runs = storage.list_runs(limit)
    if not runs:
        print("No stored runs.")
        return
    for metadata in runs:
        counts = metadata.extra.get("stage_counts", {})
        print(
            f"{metadata.run_at:%Y-%m-%d %H:%M} {metadata.run_id[:8]} env={metadata.environment} "
            f"watchlist={metadata.watchlist} scored={counts.get('score', 0)}"
        )


def run_from_args(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = _apply_overrides(get_settings(args.env), args)
        storage: Optional[Storage] = None
        if not args.no_save or args.list_runs is not None:
            storage = create_storage(settings, args.storage)
        if args.list_runs is not None:
            _print_runs(storage, args.list_runs)
            return 0
        scanner = GammaScanner.from_settings(settings, sink=storage)
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        print(f"Configuration error: {exc}")
        return 2
    except StorageError as exc:
        LOGGER.error("Storage error: %s", exc)
        print(f"Storage error: {exc}")
        return 1

    tickers = _tokenize_tickers(args.tickers)
    try:
        report = scanner.run(tickers or None, watchlist=args.watchlist)
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        print(f"Configuration error: {exc}")
        return 2
    except StorageError as exc:
        LOGGER.error("Failed to save scan results: %s", exc)
        print(f"Failed to save scan results: {exc}")
        return 1

    for line in report.summary_lines():
        print(line)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    _configure_logging()
    return run_from_args(argv)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
