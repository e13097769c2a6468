from __future__ import annotations

from typing import Dict

DEFAULT_SCORER_CONFIG: Dict[str, object] = {
    "enabled": [
        "rsi",
        "gap_size",
        "gap_fill",
        "consolidation",
        "volume_spike",
        "short_interest",
        "moving_average",
        "gap_recency",
        "trend",
    ],
    "weights": {
        "rsi": 1.0,
        "gap_size": 1.0,
        "gap_fill": 1.0,
        "consolidation": 1.0,
        "volume_spike": 1.0,
        "short_interest": 1.0,
        "moving_average": 1.0,
        "gap_recency": 1.0,
        "trend": 1.0,
    },
    "score_bounds": {
        "min": 0.0,
        "max": 100.0,
    },
}


_MAPPING_KEYS = ("weights", "score_bounds", "tiers")


def merge_config(overrides: Dict[str, object] | None) -> Dict[str, object]:
    """Layer engine overrides on the defaults; mapping sections merge key by key."""

    merged: Dict[str, object] = {
        "enabled": list(DEFAULT_SCORER_CONFIG["enabled"]),  # type: ignore[arg-type]
        "weights": dict(DEFAULT_SCORER_CONFIG["weights"]),  # type: ignore[arg-type]
        "score_bounds": dict(DEFAULT_SCORER_CONFIG["score_bounds"]),  # type: ignore[arg-type]
        "tiers": {},
    }
    for key, value in (overrides or {}).items():
        if key in _MAPPING_KEYS:
            section = dict(merged[key])  # type: ignore[arg-type]
            section.update(value or {})  # type: ignore[arg-type]
            merged[key] = section
        elif key == "enabled":
            merged["enabled"] = list(value or [])  # type: ignore[arg-type]
        else:
            merged[key] = value
    return merged
