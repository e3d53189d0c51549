# src/survey_results/tools/filters.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import pandas as pd

from ..app.errors import InvalidFilter
from ..db.models import CHECKBOX, MATRIX_2D, RADIO, TAGS, QuestionDefinition, ResponseRecord

logger = logging.getLogger(__name__)


DATE_RANGES: Tuple[str, ...] = ("all", "today", "week", "month", "quarter")

FILTERABLE_TYPES = frozenset({RADIO, CHECKBOX, MATRIX_2D, TAGS})


@dataclass(frozen=True)
class FilterState:
    date_range: str = "all"
    # question_id -> allowed values; an empty allow-list is inactive
    questions: Mapping[str, Sequence[str]] = field(default_factory=dict)

    def active_questions(self) -> List[Tuple[str, Set[str]]]:
        return [(qid, {str(v) for v in allowed}) for qid, allowed in self.questions.items() if allowed]


def _localize(now: Any, tz: str) -> pd.Timestamp:
    if now is None:
        return pd.Timestamp.now(tz=tz)
    ts = pd.Timestamp(now)
    if ts.tzinfo is None:
        return ts.tz_localize(tz)
    return ts.tz_convert(tz)


def date_cutoff(date_range: str, now: pd.Timestamp) -> Optional[pd.Timestamp]:
    """
    Lower bound for a date-range key, or None for "all".
    Cutoffs are local midnights: today, 7 days ago, one and three calendar months ago.
    """
    if date_range == "all":
        return None
    midnight = now.normalize()
    if date_range == "today":
        return midnight
    if date_range == "week":
        return midnight - pd.DateOffset(days=7)
    if date_range == "month":
        return midnight - pd.DateOffset(months=1)
    if date_range == "quarter":
        return midnight - pd.DateOffset(months=3)
    raise InvalidFilter(f"Unknown date range: {date_range!r} (expected one of {', '.join(DATE_RANGES)})")


def parse_timestamp(raw: Optional[str], tz: str) -> Optional[pd.Timestamp]:
    if not raw:
        return None
    ts = pd.to_datetime(raw, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    # Naive timestamps are read as local to the configured zone.
    if ts.tzinfo is None:
        ts = ts.tz_localize(tz, ambiguous="NaT", nonexistent="NaT")
        return None if pd.isna(ts) else ts
    return ts.tz_convert(tz)


def answer_keys(value: Any) -> Set[str]:
    # The set of values an answer "contains" for allow-list matching.
    if value is None:
        return set()
    if isinstance(value, Mapping):
        if "isOther" in value:
            return {"other"} if value.get("isOther") else set()
        return {str(k) for k, v in value.items() if v is True or (k == "other" and isinstance(v, str) and v.strip())}
    if isinstance(value, (list, tuple)):
        keys: Set[str] = set()
        for item in value:
            if isinstance(item, (str, int)) and not isinstance(item, bool):
                keys.add(str(item))
            elif isinstance(item, Mapping) and item.get("isOther"):
                keys.add("other")
        return keys
    if isinstance(value, bool):
        return set()
    if isinstance(value, (str, int, float)):
        s = str(value)
        return {s} if s else set()
    return set()


def apply_filters(
    responses: Iterable[ResponseRecord],
    filters: Optional[FilterState] = None,
    now: Optional[pd.Timestamp] = None,
    tz: str = "UTC",
) -> List[ResponseRecord]:
    """
    Order-preserving subset of `responses` matching every active filter.

    Date ranges keep responses with cutoff < timestamp <= now. Question filters
    keep a response when its answer overlaps the allow-list; a response that
    did not answer a filtered question is dropped.
    Always returns a new list, even when nothing is filtered.
    """
    filters = filters or FilterState()
    if filters.date_range not in DATE_RANGES:
        raise InvalidFilter(f"Unknown date range: {filters.date_range!r}")

    cutoff: Optional[pd.Timestamp] = None
    upper: Optional[pd.Timestamp] = None
    if filters.date_range != "all":
        upper = _localize(now, tz)
        cutoff = date_cutoff(filters.date_range, upper)

    question_filters = filters.active_questions()

    out: List[ResponseRecord] = []
    for record in responses:
        if cutoff is not None:
            ts = parse_timestamp(record.timestamp, tz)
            if ts is None or not (cutoff < ts <= upper):
                continue
        if all(answer_keys(record.value_for(qid)) & allowed for qid, allowed in question_filters):
            out.append(record)

    logger.debug(
        "Applied response filters",
        extra={"date_range": filters.date_range, "question_filters": len(question_filters), "kept": len(out)},
    )
    return out


def identify_filterable_questions(
    questions: Iterable[QuestionDefinition],
    max_options: int = 20,
) -> List[QuestionDefinition]:
    # Segmenting questions: categorical types with a manageable number of options.
    out: List[QuestionDefinition] = []
    for q in questions:
        if not q.id or q.type not in FILTERABLE_TYPES:
            continue
        if q.type in {RADIO, CHECKBOX} and not q.options:
            continue
        if len(q.options) > max_options:
            continue
        out.append(q)
    return out
