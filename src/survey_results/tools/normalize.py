# src/survey_results/tools/normalize.py
"""
Response normalisation.

Raw answer values arrive in whatever shape the survey front-end stored them
(strings, arrays, mappings, nested mappings).  Every question type has exactly
one normaliser here that maps the accepted wire shapes to one canonical
in-memory value, or returns None when the value is malformed for that type.
Aggregators only ever see canonical values.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple

from ..db.models import ResponseRecord


RankShape = Literal["ids", "pairs", "mapping"]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class QuestionValues:
    # values[i] was given by the respondent labelled labels[i]
    values: List[Any] = field(default_factory=list)
    labels: List[Optional[str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class ChoiceSet:
    keys: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RankedEntry:
    option_id: str
    position: int  # 0-based


@dataclass(frozen=True)
class Ballot:
    entries: Tuple[RankedEntry, ...] = ()

    @property
    def order(self) -> Tuple[str, ...]:
        return tuple(e.option_id for e in self.entries)


# -------------------------
# Extraction
# -------------------------

def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return False
    return True


def extract_question_values(records: Iterable[ResponseRecord], question_id: str) -> QuestionValues:
    values: List[Any] = []
    labels: List[Optional[str]] = []
    for record in records:
        v = record.value_for(question_id)
        if not is_present(v):
            continue
        values.append(v)
        labels.append(record.label)
    return QuestionValues(values=values, labels=labels)


# -------------------------
# Scalar helpers
# -------------------------

def _as_number(v: Any) -> Optional[float]:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    if isinstance(v, float) and not math.isfinite(v):
        return None
    return v


def _as_int(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v) if math.isfinite(v) and v.is_integer() else None
    if isinstance(v, str):
        s = v.strip()
        if re.fullmatch(r"[+-]?\d+", s):
            return int(s)
    return None


def _as_key(v: Any) -> Optional[str]:
    if isinstance(v, str):
        return v if v != "" else None
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return None


# -------------------------
# Per-type normalisers
# -------------------------

def normalize_radio(raw: Any) -> Optional[str]:
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return _as_key(raw)


def normalize_checkbox(raw: Any) -> Optional[ChoiceSet]:
    keys: List[str] = []

    if isinstance(raw, (list, tuple)):
        # ['a', 'b', {isOther: true, otherValue: '...'}]
        for item in raw:
            if isinstance(item, str):
                if item:
                    keys.append(item)
            elif isinstance(item, Mapping) and item.get("isOther") and item.get("otherValue"):
                keys.append("other")

    elif isinstance(raw, Mapping):
        if "isOther" in raw:
            # The whole answer is an "other" marker.
            if raw.get("isOther") and raw.get("otherValue"):
                keys.append("other")
        else:
            # {a: true, b: false, other: 'free text'}
            for key, value in raw.items():
                if key == "other":
                    if value is True or (isinstance(value, str) and value.strip()):
                        keys.append("other")
                elif value is True:
                    keys.append(str(key))
    else:
        return None

    return ChoiceSet(keys=tuple(dict.fromkeys(keys)))


def normalize_matrix(raw: Any) -> Optional[Tuple[Tuple[str, str], ...]]:
    pairs: List[Tuple[str, str]] = []

    if isinstance(raw, (list, tuple)):
        for item in raw:
            if not isinstance(item, str):
                continue
            row, sep, col = item.partition(":")
            if sep and row and col:
                pairs.append((row, col))
    elif isinstance(raw, Mapping):
        # {rowId: colId}
        for row, col in raw.items():
            col_key = _as_key(col)
            if col_key is not None:
                pairs.append((str(row), col_key))
    else:
        return None

    return tuple(pairs)


def normalize_likert(raw: Any) -> Optional[Dict[str, int]]:
    if not isinstance(raw, Mapping):
        return None
    out: Dict[str, int] = {}
    for key, value in raw.items():
        rating = _as_int(value)
        if rating is not None:
            out[str(key)] = rating
    return out


def normalize_slider(raw: Any) -> Optional[Dict[str, Optional[float]]]:
    """
    Returns {option: number-or-None}. Keys are kept even when their value is not
    numeric, because the option universe of a slider is discovered from keys.
    """
    if isinstance(raw, Mapping) and "value" in raw:
        # A `value` wrapper around anything but a mapping is malformed.
        raw = raw["value"]
    if not isinstance(raw, Mapping):
        return None
    return {str(k): _as_number(v) for k, v in raw.items() if k != "comment"}


def classify_rank_shape(raw: Any) -> Optional[RankShape]:
    if isinstance(raw, Mapping):
        return "mapping"
    if isinstance(raw, (list, tuple)):
        if raw and all(isinstance(item, Mapping) for item in raw):
            return "pairs"
        return "ids"
    return None


def _ballot_from_ids(raw: Iterable[Any]) -> Ballot:
    # Position is the array index; unusable items still occupy their slot.
    entries = []
    for index, item in enumerate(raw):
        key = _as_key(item)
        if key is not None:
            entries.append(RankedEntry(option_id=key, position=index))
    return Ballot(entries=tuple(entries))


def _ballot_from_ranks(ranked: Iterable[Tuple[Any, Any]], option_count: Optional[int]) -> Ballot:
    usable: List[Tuple[str, int]] = []
    for option_id, rank in ranked:
        key = _as_key(option_id)
        r = _as_int(rank) if not isinstance(rank, str) else None
        if key is None or r is None or r <= 0:
            continue
        if option_count is not None and r > option_count:
            continue
        usable.append((key, r))

    usable.sort(key=lambda kv: kv[1])
    return Ballot(entries=tuple(RankedEntry(option_id=k, position=r - 1) for k, r in usable))


def normalize_rank(raw: Any, option_count: Optional[int] = None) -> Optional[Ballot]:
    shape = classify_rank_shape(raw)
    if shape == "ids":
        return _ballot_from_ids(raw)
    if shape == "pairs":
        return _ballot_from_ranks(((item.get("id"), item.get("rank")) for item in raw), option_count)
    if shape == "mapping":
        return _ballot_from_ranks(raw.items(), option_count)
    return None


def normalize_text(raw: Any) -> Optional[str]:
    if isinstance(raw, str) and raw.strip():
        return raw
    return None


def normalize_tags(raw: Any) -> Optional[Tuple[str, ...]]:
    if not isinstance(raw, (list, tuple)):
        return None
    return tuple(t.lower() for t in raw if isinstance(t, str) and t.strip())


def normalize_range(raw: Any) -> Optional[int]:
    # Integer part of the answer (direct value or {value: ...}).
    if isinstance(raw, Mapping):
        raw = raw.get("value")
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return math.trunc(raw) if math.isfinite(raw) else None
    if isinstance(raw, str):
        m = _LEADING_INT.match(raw)
        return int(m.group(1)) if m else None
    return None
