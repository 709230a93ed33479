from __future__ import annotations
import math
from typing import Dict, Iterable

from ..models import APIResult

STATUS_WEIGHTS: Dict[str, float] = {"success": 1.5, "partial": 1.0, "failed": 0.5}
_IGNORED = ("pending", "skipped")


def js_round(x: float) -> int:
    # half-up, not banker's rounding
    return int(math.floor(x + 0.5))


def overall_confidence(results: Iterable[APIResult]) -> int:
    """
    Weighted mean of adapter confidences. Failures are down-weighted,
    not dropped; pending/skipped entries do not count.
    """
    total_weight = 0.0
    weighted_sum = 0.0
    for r in results:
        if r.status in _IGNORED:
            continue
        w = STATUS_WEIGHTS.get(r.status, 1.0)
        weighted_sum += r.confidence * w
        total_weight += w
    if total_weight == 0:
        return 0
    return js_round(weighted_sum / total_weight)
