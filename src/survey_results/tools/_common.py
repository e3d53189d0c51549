from __future__ import annotations

import math
from typing import Any, Dict, Hashable, List, Optional, Sequence


def round_half_up(x: float) -> int:
    # Halves round towards +infinity (2.5 -> 3, -2.5 -> -2), unlike Python's banker's round().
    return int(math.floor(x + 0.5))


def percent(count: float, total: float) -> int:
    if total <= 0:
        return 0
    return round_half_up(count / total * 100)


def label_at(labels: Optional[Sequence[Optional[str]]], index: int) -> Optional[str]:
    if not labels or index >= len(labels):
        return None
    label = labels[index]
    if label is None:
        return None
    s = str(label).strip()
    return s or None


class LabelBuckets:
    """
    Collects respondent labels per bucket, in encounter order.
    A bucket without contributions renders as an empty string.
    """

    def __init__(self) -> None:
        self._buckets: Dict[Hashable, List[str]] = {}

    def add(self, key: Hashable, label: Optional[str]) -> None:
        if label:
            self._buckets.setdefault(key, []).append(label)

    def joined(self, key: Hashable) -> str:
        return ", ".join(self._buckets.get(key, []))


def format_number(x: Any) -> str:
    if isinstance(x, float):
        x = round(x, 10)
        if x.is_integer():
            return str(int(x))
    return str(x)
