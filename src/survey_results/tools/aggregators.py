# src/survey_results/tools/aggregators.py
"""
Per-question-type reducers for categorical and free-text questions.

Every aggregator is a pure function (values, question, labels) -> aggregate.
`values` are the present raw answers for one question (see
normalize.extract_question_values) and `labels[i]` is the label of the
respondent who gave values[i]. Malformed answers are skipped; they never
abort the batch and never raise.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..db.models import MatrixAxis, Option, QuestionDefinition, ResponseRecord
from ._common import LabelBuckets, label_at, percent, round_half_up
from .filters import parse_timestamp
from .normalize import (
    normalize_checkbox,
    normalize_likert,
    normalize_matrix,
    normalize_radio,
    normalize_tags,
    normalize_text,
)

logger = logging.getLogger(__name__)


STOP_WORDS = frozenset({
    # English
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for", "with", "by",
    "about", "as", "of", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "do", "does", "did", "not", "no", "yes", "it", "its", "this", "that", "these",
    "those", "they", "them", "their", "there", "then", "than", "we", "our", "you", "your",
    "he", "she", "his", "her", "i", "me", "my", "from", "into", "out", "up", "down", "so",
    "can", "could", "will", "would", "should", "may", "might", "must", "also", "very",
    "just", "more", "most", "some", "any", "all", "each", "which", "what", "when", "where",
    "who", "how", "why", "if", "because", "while", "only", "other", "such", "own", "same",
    # Dutch
    "de", "het", "een", "en", "van", "ik", "te", "dat", "die", "in", "is", "op", "aan",
    "met", "als", "voor", "er", "maar", "om", "hem", "dan", "zou", "wat", "mijn", "men",
    "dit", "zo", "door", "over", "ze", "zich", "bij", "ook", "tot", "je", "mij", "uit",
    "der", "daar", "haar", "naar", "heb", "hoe", "heeft", "hebben", "deze", "u", "want",
    "nog", "zal", "wij", "zij", "nu", "geen", "omdat", "iets", "worden", "toch", "al",
    "waren", "veel", "meer", "doen", "toen", "moet", "ben", "zijn", "was", "wordt", "niet",
    "kan", "hun", "dus", "alles", "onder", "ja", "nee", "werd", "wel", "kunnen", "wie",
    "hier", "tegen", "niets", "iemand", "geweest", "andere", "onze", "ons", "jullie",
})

_TOKEN_SPLIT = re.compile(r"\W+", flags=re.UNICODE)


# -------------------------
# Aggregate payloads
# -------------------------

@dataclass(frozen=True)
class RadioAggregate:
    values: List[str]
    labels: List[str]
    data: List[int]
    percentages: List[int]
    tooltip_labels: List[str]
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CheckboxAggregate:
    values: List[str]
    labels: List[str]
    data: List[int]
    percentages: List[int]
    tooltip_labels: List[str]
    total_responses: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WordCount:
    text: str
    weight: int


@dataclass(frozen=True)
class TextAggregate:
    total_responses: int
    average_length: int
    top_words: List[WordCount]
    responses: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TagsAggregate:
    total_tags: int
    total_responses: int
    top_tags: List[WordCount]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MatrixAggregate:
    rows: List[MatrixAxis]
    columns: List[MatrixAxis]
    counts: Dict[str, Dict[str, int]]
    percentages: Dict[str, Dict[str, int]]
    tooltips: Dict[str, Dict[str, str]]
    totals: Dict[str, int]
    total_responses: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LikertAggregate:
    options: List[Option]
    scale_values: List[int]
    scale_labels: Dict[int, str]
    counts: Dict[str, Dict[int, int]]
    percentages: Dict[str, Dict[int, int]]
    tooltips: Dict[str, Dict[int, str]]
    total_responses_per_option: Dict[str, int]
    total_responses: int
    means: Dict[str, Optional[float]] = field(default_factory=dict)
    net_support: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------
# Radio
# -------------------------

def aggregate_radio(
    values: Sequence[Any],
    question: QuestionDefinition,
    labels: Optional[Sequence[Optional[str]]] = None,
) -> RadioAggregate:
    # Declared options first (count 0 if never chosen), then unknown values in encounter order.
    counts: Dict[str, int] = {opt.value: 0 for opt in question.options}
    tooltips = LabelBuckets()
    total = 0

    for i, raw in enumerate(values):
        value = normalize_radio(raw)
        if value is None:
            logger.debug("Skipping malformed radio answer", extra={"question_id": question.id})
            continue
        counts[value] = counts.get(value, 0) + 1
        tooltips.add(value, label_at(labels, i))
        total += 1

    keys = list(counts)
    data = [counts[k] for k in keys]
    return RadioAggregate(
        values=keys,
        labels=[question.label_for(k) for k in keys],
        data=data,
        percentages=[percent(c, total) for c in data],
        tooltip_labels=[tooltips.joined(k) for k in keys],
        total=total,
    )


# -------------------------
# Checkbox
# -------------------------

def aggregate_checkbox(
    values: Sequence[Any],
    question: QuestionDefinition,
    labels: Optional[Sequence[Optional[str]]] = None,
) -> CheckboxAggregate:
    """
    Multi-select counts. Percentages are per responding person, so they can
    add up to more than 100.
    """
    counts: Dict[str, int] = {opt.value: 0 for opt in question.options}
    tooltips = LabelBuckets()
    total_responses = 0

    for i, raw in enumerate(values):
        selection = normalize_checkbox(raw)
        if selection is None:
            logger.debug("Skipping malformed checkbox answer", extra={"question_id": question.id})
            continue
        total_responses += 1
        label = label_at(labels, i)
        for key in selection.keys:
            counts[key] = counts.get(key, 0) + 1
            tooltips.add(key, label)

    keys = list(counts)
    data = [counts[k] for k in keys]
    return CheckboxAggregate(
        values=keys,
        labels=[question.label_for(k) for k in keys],
        data=data,
        percentages=[percent(c, total_responses) for c in data],
        tooltip_labels=[tooltips.joined(k) for k in keys],
        total_responses=total_responses,
    )


# -------------------------
# Text / tags
# -------------------------

def tokenize(text: str) -> List[str]:
    return [
        tok for tok in _TOKEN_SPLIT.split(text.lower())
        if len(tok) > 2 and tok not in STOP_WORDS
    ]


def aggregate_text(
    values: Sequence[Any],
    question: Optional[QuestionDefinition] = None,
    labels: Optional[Sequence[Optional[str]]] = None,
    top_k: int = 20,
    sample_size: Optional[int] = 5,
) -> TextAggregate:
    """
    Word statistics for free-text answers.

    Args:
        top_k: number of most frequent words to return.
        sample_size: number of raw answers to keep as samples; None keeps all.
    """
    texts = [t for t in (normalize_text(v) for v in values) if t is not None]
    total = len(texts)
    average_length = round_half_up(sum(len(t) for t in texts) / total) if total else 0

    word_counts: Dict[str, int] = {}
    for text in texts:
        for tok in tokenize(text):
            word_counts[tok] = word_counts.get(tok, 0) + 1

    # sorted() is stable: equal counts keep first-encountered order.
    ranked = sorted(word_counts.items(), key=lambda kv: kv[1], reverse=True)[: max(int(top_k), 0)]

    return TextAggregate(
        total_responses=total,
        average_length=average_length,
        top_words=[WordCount(text=w, weight=c) for w, c in ranked],
        responses=list(texts) if sample_size is None else texts[: max(int(sample_size), 0)],
    )


def aggregate_tags(
    values: Sequence[Any],
    question: Optional[QuestionDefinition] = None,
    labels: Optional[Sequence[Optional[str]]] = None,
) -> TagsAggregate:
    tag_counts: Dict[str, int] = {}
    total_tags = 0
    total_responses = 0

    for raw in values:
        tags = normalize_tags(raw)
        if tags is None:
            continue
        total_responses += 1
        for tag in tags:
            tag_counts[tag] = tag_counts.get(tag, 0) + 1
            total_tags += 1

    ranked = sorted(tag_counts.items(), key=lambda kv: kv[1], reverse=True)
    return TagsAggregate(
        total_tags=total_tags,
        total_responses=total_responses,
        top_tags=[WordCount(text=t, weight=c) for t, c in ranked],
    )


# -------------------------
# Matrix
# -------------------------

def aggregate_matrix(
    values: Sequence[Any],
    question: QuestionDefinition,
    labels: Optional[Sequence[Optional[str]]] = None,
) -> MatrixAggregate:
    """
    Row/column cell counts. Percentages use the per-row total as denominator,
    i.e. the number of counted answers in that row.
    """
    rows = list(question.matrix.rows) if question.matrix else []
    columns = list(question.matrix.columns) if question.matrix else []
    if not rows or not columns:
        logger.warning("Matrix question has no rows/columns declared", extra={"question_id": question.id})

    counts: Dict[str, Dict[str, int]] = {r.id: {c.id: 0 for c in columns} for r in rows}
    totals: Dict[str, int] = {r.id: 0 for r in rows}
    tooltips = LabelBuckets()
    total_responses = 0

    for i, raw in enumerate(values):
        pairs = normalize_matrix(raw)
        if pairs is None:
            logger.debug("Skipping malformed matrix answer", extra={"question_id": question.id})
            continue
        total_responses += 1
        label = label_at(labels, i)
        for row_id, col_id in pairs:
            row = counts.get(row_id)
            if row is None or col_id not in row:
                continue
            row[col_id] += 1
            totals[row_id] += 1
            tooltips.add((row_id, col_id), label)

    percentages = {
        r.id: {c.id: percent(counts[r.id][c.id], totals[r.id]) for c in columns}
        for r in rows
    }
    cell_tooltips = {
        r.id: {c.id: tooltips.joined((r.id, c.id)) for c in columns}
        for r in rows
    }
    return MatrixAggregate(
        rows=rows,
        columns=columns,
        counts=counts,
        percentages=percentages,
        tooltips=cell_tooltips,
        totals=totals,
        total_responses=total_responses,
    )


# -------------------------
# Likert
# -------------------------

def _empty_likert(question: QuestionDefinition) -> LikertAggregate:
    return LikertAggregate(
        options=list(question.options),
        scale_values=[],
        scale_labels={},
        counts={o.value: {} for o in question.options},
        percentages={o.value: {} for o in question.options},
        tooltips={o.value: {} for o in question.options},
        total_responses_per_option={o.value: 0 for o in question.options},
        total_responses=0,
        means={o.value: None for o in question.options},
        net_support={o.value: 0.0 for o in question.options},
    )


def aggregate_likert(
    values: Sequence[Any],
    question: QuestionDefinition,
    labels: Optional[Sequence[Optional[str]]] = None,
) -> LikertAggregate:
    """
    Per-option rating distribution on a closed integer scale.

    Ratings outside [min, max] are ignored. Each option uses its own number of
    ratings as denominator, so options rated by fewer people still get correct
    internal percentages.
    """
    scale = question.likert_scale
    if scale is None or scale.max < scale.min:
        logger.warning("Likert question has no usable scale", extra={"question_id": question.id})
        return _empty_likert(question)

    scale_values = scale.values
    options = list(question.options)
    if not options:
        logger.warning("Likert question declares no options to rate", extra={"question_id": question.id})
    counts: Dict[str, Dict[int, int]] = {o.value: {v: 0 for v in scale_values} for o in options}
    per_option: Dict[str, int] = {o.value: 0 for o in options}
    sums: Dict[str, int] = {o.value: 0 for o in options}
    tooltips = LabelBuckets()
    total_responses = 0

    for i, raw in enumerate(values):
        ratings = normalize_likert(raw)
        if ratings is None:
            logger.debug("Skipping malformed likert answer", extra={"question_id": question.id})
            continue
        total_responses += 1
        label = label_at(labels, i)
        for option_value, rating in ratings.items():
            if option_value not in counts or not (scale.min <= rating <= scale.max):
                continue
            counts[option_value][rating] += 1
            per_option[option_value] += 1
            sums[option_value] += rating
            tooltips.add((option_value, rating), label)

    midpoint = (scale.min + scale.max) / 2
    means: Dict[str, Optional[float]] = {}
    net_support: Dict[str, float] = {}
    for o in options:
        n = per_option[o.value]
        if n == 0:
            means[o.value] = None
            net_support[o.value] = 0.0
            continue
        positive = sum(c for v, c in counts[o.value].items() if v > midpoint)
        negative = sum(c for v, c in counts[o.value].items() if v < midpoint)
        means[o.value] = round(sums[o.value] / n, 2)
        net_support[o.value] = round((positive - negative) / n * 100, 2)

    return LikertAggregate(
        options=options,
        scale_values=scale_values,
        scale_labels={v: scale.label_for(v) for v in scale_values},
        counts=counts,
        percentages={
            o.value: {v: percent(counts[o.value][v], per_option[o.value]) for v in scale_values}
            for o in options
        },
        tooltips={
            o.value: {v: tooltips.joined((o.value, v)) for v in scale_values}
            for o in options
        },
        total_responses_per_option=per_option,
        total_responses=total_responses,
        means=means,
        net_support=net_support,
    )


# -------------------------
# Overview
# -------------------------

@dataclass(frozen=True)
class OverviewStats:
    total_responses: int
    latest_response: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def overview_stats(records: Sequence[ResponseRecord], tz: str = "UTC") -> OverviewStats:
    # Header numbers for the (already filtered) response set.
    latest = None
    for record in records:
        ts = parse_timestamp(record.timestamp, tz)
        if ts is not None and (latest is None or ts > latest):
            latest = ts
    return OverviewStats(
        total_responses=len(records),
        latest_response=latest.isoformat() if latest is not None else None,
    )
