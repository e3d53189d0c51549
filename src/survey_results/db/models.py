# src/survey_results/db/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple


QuestionType = Literal[
    "radio", "checkbox", "shortText", "longText", "matrix2d",
    "likert", "multiValueSlider", "rankOptions", "rangeSlider", "tags",
]

RADIO = "radio"
CHECKBOX = "checkbox"
SHORT_TEXT = "shortText"
LONG_TEXT = "longText"
MATRIX_2D = "matrix2d"
LIKERT = "likert"
MULTI_VALUE_SLIDER = "multiValueSlider"
RANK_OPTIONS = "rankOptions"
RANGE_SLIDER = "rangeSlider"
TAGS = "tags"

QUESTION_TYPES: Tuple[str, ...] = (
    RADIO, CHECKBOX, SHORT_TEXT, LONG_TEXT, MATRIX_2D,
    LIKERT, MULTI_VALUE_SLIDER, RANK_OPTIONS, RANGE_SLIDER, TAGS,
)

# Views a renderer can draw per question type.
VISUALIZATION_TYPES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    RADIO: ("pie", "doughnut", "horizontalBar", "verticalBar"),
    CHECKBOX: ("horizontalBar", "verticalBar", "stackedBar", "radar"),
    MATRIX_2D: ("heatmap", "groupedBar", "radar", "bubble"),
    LIKERT: ("heatmap", "stackedBar"),
    RANGE_SLIDER: ("histogram",),
    TAGS: ("wordcloud",),
    MULTI_VALUE_SLIDER: ("histogram", "boxplot", "stackedPositions"),
    RANK_OPTIONS: ("rankedOrder", "stackedPositions", "irv"),
    SHORT_TEXT: ("wordcloud", "list"),
    LONG_TEXT: ("wordcloud", "list"),
})

DEFAULT_VISUALIZATION: Mapping[str, str] = MappingProxyType({
    RADIO: "pie",
    CHECKBOX: "horizontalBar",
    MATRIX_2D: "heatmap",
    LIKERT: "heatmap",
    RANGE_SLIDER: "histogram",
    TAGS: "wordcloud",
    MULTI_VALUE_SLIDER: "histogram",
    RANK_OPTIONS: "rankedOrder",
    SHORT_TEXT: "wordcloud",
    LONG_TEXT: "wordcloud",
})


def _as_str(v: Any) -> str:
    return "" if v is None else str(v)


@dataclass(frozen=True)
class Option:
    value: str
    label: str

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Option":
        value = _as_str(d.get("value"))
        return Option(value=value, label=_as_str(d.get("label")) or value)


@dataclass(frozen=True)
class MatrixAxis:
    id: str
    label: str

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "MatrixAxis":
        axis_id = _as_str(d.get("id"))
        return MatrixAxis(id=axis_id, label=_as_str(d.get("label")) or axis_id)


@dataclass(frozen=True)
class MatrixConfig:
    rows: Tuple[MatrixAxis, ...] = ()
    columns: Tuple[MatrixAxis, ...] = ()

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "MatrixConfig":
        return MatrixConfig(
            rows=tuple(MatrixAxis.from_dict(r) for r in d.get("rows") or []),
            columns=tuple(MatrixAxis.from_dict(c) for c in d.get("columns") or []),
        )


@dataclass(frozen=True)
class LikertScale:
    min: int
    max: int
    labels: Mapping[str, str] = field(default_factory=dict)

    @property
    def values(self) -> List[int]:
        return list(range(self.min, self.max + 1))

    def label_for(self, value: int) -> str:
        return self.labels.get(str(value)) or str(value)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "LikertScale":
        labels = d.get("labels") or {}
        return LikertScale(
            min=int(d["min"]),
            max=int(d["max"]),
            labels={str(k): _as_str(v) for k, v in labels.items()},
        )


def _likert_or_none(raw: Any) -> Optional[LikertScale]:
    # A scale without integer bounds is treated as undeclared.
    if not isinstance(raw, Mapping):
        return None
    try:
        return LikertScale.from_dict(raw)
    except (KeyError, TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RangeSliderConfig:
    min: float = 0
    max: float = 100
    step: float = 1

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "RangeSliderConfig":
        # Zero/missing values fall back to defaults.
        return RangeSliderConfig(
            min=d.get("min") or 0,
            max=d.get("max") or 100,
            step=d.get("step") or 1,
        )


@dataclass(frozen=True)
class QuestionDefinition:
    id: str
    type: str
    title: str = ""
    description: Optional[str] = None
    options: Tuple[Option, ...] = ()
    matrix: Optional[MatrixConfig] = None
    likert_scale: Optional[LikertScale] = None
    rank_options: Optional[Tuple[Option, ...]] = None
    range_slider: Optional[RangeSliderConfig] = None

    # Step context (the definition groups questions into wizard steps)
    step_id: Optional[str] = None
    step_title: Optional[str] = None

    # Default view declared by the survey author
    visualization: Optional[Dict[str, Any]] = None

    @property
    def ranked_options(self) -> Tuple[Option, ...]:
        if self.rank_options:
            return self.rank_options
        return self.options

    def label_for(self, value: str) -> str:
        for opt in self.options:
            if opt.value == value:
                return opt.label
        return value

    @staticmethod
    def from_dict(d: Mapping[str, Any], step: Optional[Mapping[str, Any]] = None) -> "QuestionDefinition":
        rank = d.get("rankOptions")
        rank_options = None
        if isinstance(rank, Mapping) and rank.get("options"):
            rank_options = tuple(Option.from_dict(o) for o in rank["options"])

        likert = d.get("likertScale")
        matrix = d.get("matrix")
        range_slider = d.get("rangeSlider")
        visualization = d.get("visualization")

        return QuestionDefinition(
            id=_as_str(d.get("id")),
            type=_as_str(d.get("type")),
            title=_as_str(d.get("title")),
            description=d.get("description"),
            options=tuple(Option.from_dict(o) for o in d.get("options") or []),
            matrix=MatrixConfig.from_dict(matrix) if isinstance(matrix, Mapping) else None,
            likert_scale=_likert_or_none(likert),
            rank_options=rank_options,
            range_slider=RangeSliderConfig.from_dict(range_slider) if isinstance(range_slider, Mapping) else None,
            step_id=_as_str(step.get("id")) if step else None,
            step_title=step.get("title") if step else None,
            visualization=dict(visualization) if isinstance(visualization, Mapping) else None,
        )


@dataclass(frozen=True)
class ResponseRecord:
    id: str
    label: Optional[str] = None
    completed_at: Optional[str] = None
    last_modified: Optional[str] = None
    responses: Mapping[str, Any] = field(default_factory=dict)

    @property
    def timestamp(self) -> Optional[str]:
        return self.completed_at or self.last_modified

    def value_for(self, question_id: str) -> Any:
        entry = self.responses.get(question_id)
        if isinstance(entry, Mapping):
            return entry.get("value")
        return None

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "ResponseRecord":
        responses = d.get("responses") or {}
        return ResponseRecord(
            id=_as_str(d.get("id")),
            label=d.get("label"),
            completed_at=d.get("completedAt"),
            last_modified=d.get("lastModified"),
            responses=dict(responses),
        )
