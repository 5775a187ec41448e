from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any


def load_json(path: str | Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def canonical_id(value: Any) -> str:
    """String form used to compare content ids (5 == "5" == 5.0)."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def is_finite_number(v: Any) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    return math.isfinite(v)


def as_quad(value: Any) -> tuple[float, ...] | None:
    """8 finite numbers as a float tuple, or None."""
    if not isinstance(value, (list, tuple)) or len(value) != 8:
        return None
    if not all(is_finite_number(v) for v in value):
        return None
    return tuple(float(v) for v in value)


def as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def as_positive_float(value: Any) -> float | None:
    if not is_finite_number(value) or value <= 0:
        return None
    return float(value)


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))
