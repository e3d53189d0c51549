# src/survey_results/tools/tables.py
"""
Long-form pandas tables for aggregates, for chart layers and spreadsheet export.
"""
from __future__ import annotations

from typing import Any, Iterable, List

import pandas as pd

from ..db.models import ResponseRecord
from .aggregators import (
    CheckboxAggregate,
    LikertAggregate,
    MatrixAggregate,
    RadioAggregate,
    TagsAggregate,
    TextAggregate,
)
from .numeric import RangeAggregate, SliderAggregate
from .ranking import BordaResult, IRVResult


def radio_frame(agg: RadioAggregate) -> pd.DataFrame:
    return pd.DataFrame({
        "value": agg.values,
        "label": agg.labels,
        "count": agg.data,
        "percentage": agg.percentages,
        "respondents": agg.tooltip_labels,
    })


def checkbox_frame(agg: CheckboxAggregate) -> pd.DataFrame:
    return pd.DataFrame({
        "value": agg.values,
        "label": agg.labels,
        "count": agg.data,
        "percentage": agg.percentages,
        "respondents": agg.tooltip_labels,
    })


def matrix_frame(agg: MatrixAggregate) -> pd.DataFrame:
    records = [
        {
            "row": row.id,
            "row_label": row.label,
            "column": col.id,
            "column_label": col.label,
            "count": agg.counts[row.id][col.id],
            "percentage": agg.percentages[row.id][col.id],
            "row_total": agg.totals[row.id],
            "respondents": agg.tooltips[row.id][col.id],
        }
        for row in agg.rows
        for col in agg.columns
    ]
    return pd.DataFrame(records, columns=[
        "row", "row_label", "column", "column_label", "count", "percentage", "row_total", "respondents",
    ])


def likert_frame(agg: LikertAggregate) -> pd.DataFrame:
    records = [
        {
            "option": opt.value,
            "option_label": opt.label,
            "rating": v,
            "rating_label": agg.scale_labels.get(v, str(v)),
            "count": agg.counts[opt.value].get(v, 0),
            "percentage": agg.percentages[opt.value].get(v, 0),
            "option_total": agg.total_responses_per_option.get(opt.value, 0),
            "respondents": agg.tooltips[opt.value].get(v, ""),
        }
        for opt in agg.options
        for v in agg.scale_values
    ]
    return pd.DataFrame(records, columns=[
        "option", "option_label", "rating", "rating_label", "count", "percentage", "option_total", "respondents",
    ])


def slider_frame(agg: SliderAggregate) -> pd.DataFrame:
    records = []
    for option in agg.options:
        s = agg.statistics[option]
        records.append({
            "option": option,
            "label": agg.labels.get(option, option),
            "average": s.average,
            "min": s.min,
            "q1": s.q1,
            "median": s.median,
            "q3": s.q3,
            "max": s.max,
            "count": s.count,
        })
    return pd.DataFrame(records, columns=["option", "label", "average", "min", "q1", "median", "q3", "max", "count"])


def range_frame(agg: RangeAggregate) -> pd.DataFrame:
    return pd.DataFrame({"bin": agg.bins, "label": agg.labels, "count": agg.data})


def text_frame(agg: TextAggregate) -> pd.DataFrame:
    return pd.DataFrame([{"word": w.text, "count": w.weight} for w in agg.top_words], columns=["word", "count"])


def tags_frame(agg: TagsAggregate) -> pd.DataFrame:
    return pd.DataFrame([{"tag": t.text, "count": t.weight} for t in agg.top_tags], columns=["tag", "count"])


def borda_frame(result: BordaResult) -> pd.DataFrame:
    records = []
    for rank, entry in enumerate(result.rankings, start=1):
        row = {"rank": rank, "option": entry.option_id, "label": entry.label, "points": entry.points}
        for i, n in enumerate(entry.position_counts, start=1):
            row[f"position_{i}"] = n
        records.append(row)
    columns = ["rank", "option", "label", "points"] + [f"position_{i}" for i in range(1, result.option_count + 1)]
    return pd.DataFrame(records, columns=columns)


def irv_frame(result: IRVResult) -> pd.DataFrame:
    # One row per (round, candidate) tally.
    records = [
        {
            "round": n,
            "candidate": candidate,
            "votes": votes,
            "total_votes": rnd.total_votes,
            "eliminated": candidate in rnd.eliminated,
        }
        for n, rnd in enumerate(result.rounds, start=1)
        for candidate, votes in rnd.counts.items()
    ]
    return pd.DataFrame(records, columns=["round", "candidate", "votes", "total_votes", "eliminated"])


_FRAMES = (
    (RadioAggregate, radio_frame),
    (CheckboxAggregate, checkbox_frame),
    (MatrixAggregate, matrix_frame),
    (LikertAggregate, likert_frame),
    (SliderAggregate, slider_frame),
    (RangeAggregate, range_frame),
    (TextAggregate, text_frame),
    (TagsAggregate, tags_frame),
    (BordaResult, borda_frame),
    (IRVResult, irv_frame),
)


def aggregate_to_frame(aggregate: Any) -> pd.DataFrame:
    for cls, fn in _FRAMES:
        if isinstance(aggregate, cls):
            return fn(aggregate)
    raise TypeError(f"No table layout for aggregate of type {type(aggregate).__name__}")


def responses_to_frame(records: Iterable[ResponseRecord]) -> pd.DataFrame:
    rows: List[dict] = [
        {"id": r.id, "label": r.label, "timestamp": r.timestamp}
        for r in records
    ]
    df = pd.DataFrame(rows, columns=["id", "label", "timestamp"])
    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce", utc=True)
    return df
