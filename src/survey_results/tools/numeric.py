# src/survey_results/tools/numeric.py
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ..db.models import QuestionDefinition, RangeSliderConfig
from ._common import format_number, round_half_up
from .normalize import normalize_range, normalize_slider

logger = logging.getLogger(__name__)

Number = Union[int, float]


@dataclass(frozen=True)
class SliderStatistics:
    average: int
    min: Number
    max: Number
    count: int
    # Box-plot summary (linear-interpolated percentiles)
    median: float = 0.0
    q1: float = 0.0
    q3: float = 0.0


@dataclass(frozen=True)
class SliderAggregate:
    options: List[str]
    labels: Dict[str, str]
    statistics: Dict[str, SliderStatistics]
    total_responses: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RangeAggregate:
    labels: List[str]
    bins: List[Number]
    data: List[int]
    total: int
    out_of_range: int
    total_responses: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_EMPTY_STATS = SliderStatistics(average=0, min=0, max=0, count=0)


def _describe(values: List[Number]) -> SliderStatistics:
    if not values:
        return _EMPTY_STATS

    arr = np.asarray(values)
    q1, median, q3 = np.percentile(arr.astype(float), [25, 50, 75])
    return SliderStatistics(
        average=round_half_up(float(arr.mean())),
        min=min(values),
        max=max(values),
        count=int(arr.size),
        median=round(float(median), 2),
        q1=round(float(q1), 2),
        q3=round(float(q3), 2),
    )


def aggregate_slider(
    values: Sequence[Any],
    question: QuestionDefinition,
    labels: Optional[Sequence[Optional[str]]] = None,
) -> SliderAggregate:
    """
    Multi-value slider statistics per option.

    The option universe is the union of keys seen in the answers (first-seen
    order). The declared options are only used when no answer carried any key.
    An option without numeric values reports zeros rather than NaN.
    """
    answers: List[Dict[str, Optional[float]]] = []
    for raw in values:
        mapping = normalize_slider(raw)
        if mapping is None:
            logger.debug("Skipping malformed slider answer", extra={"question_id": question.id})
            continue
        answers.append(mapping)

    universe: Dict[str, None] = {}
    for mapping in answers:
        for key in mapping:
            universe.setdefault(key, None)
    options = list(universe) or [opt.value for opt in question.options]

    statistics: Dict[str, SliderStatistics] = {}
    for option in options:
        nums = [m[option] for m in answers if m.get(option) is not None]
        statistics[option] = _describe(nums)

    return SliderAggregate(
        options=options,
        labels={o: question.label_for(o) for o in options},
        statistics=statistics,
        total_responses=len(answers),
    )


def _empty_range(total_responses: int = 0) -> RangeAggregate:
    return RangeAggregate(labels=[], bins=[], data=[], total=0, out_of_range=0, total_responses=total_responses)


def aggregate_range_slider(
    values: Sequence[Any],
    question: QuestionDefinition,
    labels: Optional[Sequence[Optional[str]]] = None,
) -> RangeAggregate:
    # Histogram with one bin per slider step.
    config: Optional[RangeSliderConfig] = question.range_slider
    if config is None:
        logger.warning("Range slider question is missing its rangeSlider configuration",
                       extra={"question_id": question.id})
        return _empty_range()

    lo, hi, step = config.min, config.max, config.step
    if step <= 0 or hi < lo:
        logger.warning("Range slider configuration is not usable",
                       extra={"question_id": question.id, "min": lo, "max": hi, "step": step})
        return _empty_range()

    num_bins = int(math.floor((hi - lo) / step)) + 1
    bins = [lo + i * step for i in range(num_bins)]

    parsed = [v for v in (normalize_range(raw) for raw in values) if v is not None]
    data = np.zeros(num_bins, dtype=int)
    out_of_range = 0
    if parsed:
        idx = np.floor((np.asarray(parsed, dtype=float) - lo) / step).astype(int)
        in_range = (idx >= 0) & (idx < num_bins)
        data = np.bincount(idx[in_range], minlength=num_bins)
        out_of_range = int((~in_range).sum())

    counts = [int(c) for c in data]
    return RangeAggregate(
        labels=[format_number(b) for b in bins],
        bins=bins,
        data=counts,
        total=sum(counts),
        out_of_range=out_of_range,
        total_responses=len(parsed),
    )
