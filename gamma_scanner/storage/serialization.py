from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Mapping

import numpy as np
import pandas as pd


def default_json_serializer(obj: Any) -> Any:
    """Conversion for numpy/pandas scalars and datetimes that ``json`` rejects."""

    if isinstance(obj, pd.Timestamp):
        return obj.to_pydatetime().isoformat()
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, np.generic):
        return obj.item()
    if hasattr(obj, "tolist"):
        return obj.tolist()
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    return str(obj)


def json_dumps(payload: Mapping[str, Any], **kwargs: Any) -> str:
    return json.dumps(dict(payload), default=default_json_serializer, **kwargs)


def json_loads(payload: str) -> Dict[str, Any]:
    return json.loads(payload) if payload else {}


__all__ = ["default_json_serializer", "json_dumps", "json_loads"]
