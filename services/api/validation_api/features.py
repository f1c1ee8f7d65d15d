from __future__ import annotations

import math
from typing import Any, Mapping

# Bookkeeping fields on a stored test record that never feed a model.
NON_FEATURE_KEYS = frozenset(
    {"id", "testId", "testName", "domain", "timestamp", "status", "createdAt"}
)


def coerce_number(value: Any) -> float | None:
    """
    Return ``value`` as a finite float, or None when it cannot stand in for a
    numeric observation (missing, boolean, non-numeric text, NaN, inf).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def build_feature_bag(doc: Mapping[str, Any] | None) -> dict[str, float]:
    """
    Given a stored test record or a request body, return the numeric
    observations it carries keyed by their original names.
    """
    if not doc:
        return {}
    out: dict[str, float] = {}
    for key, raw in doc.items():
        if key in NON_FEATURE_KEYS:
            continue
        number = coerce_number(raw)
        if number is not None:
            out[str(key)] = number
    return out
