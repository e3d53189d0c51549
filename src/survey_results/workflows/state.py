# src/survey_results/workflows/state.py
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..app.config import Settings
from ..db.models import QuestionDefinition, ResponseRecord
from ..db.preferences import ViewPreference
from ..tools.aggregators import OverviewStats
from ..tools.filters import FilterState


# -------------------------
# Inputs of one report pass
# -------------------------

@dataclass(frozen=True)
class ResultsContext:
    questions: List[QuestionDefinition]
    responses: List[ResponseRecord]
    filters: FilterState = field(default_factory=FilterState)
    preferences: Mapping[str, ViewPreference] = field(default_factory=dict)
    settings: Settings = field(default_factory=Settings)
    # Reference time for date-range filters; None means the wall clock.
    now: Optional[Any] = None


# -------------------------
# Report payloads (JSON-friendly)
# -------------------------

@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    title: str
    type: str
    step_id: Optional[str]
    step_title: Optional[str]
    view: Optional[str]
    aggregate: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return _json_sanitize(self)


@dataclass(frozen=True)
class ResultsReport:
    overview: OverviewStats
    questions: List[QuestionResult] = field(default_factory=list)
    # Questions a caller can offer as answer filters
    filterable_questions: List[str] = field(default_factory=list)
    pass_id: Optional[str] = None

    def get(self, question_id: str) -> Optional[QuestionResult]:
        for q in self.questions:
            if q.question_id == question_id:
                return q
        return None

    def to_dict(self) -> Dict[str, Any]:
        return _json_sanitize(self)

    def to_json(self, ensure_ascii: bool = False, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=ensure_ascii, indent=indent)


def _json_sanitize(obj: Any) -> Any:
    if obj is None: return None
    if isinstance(obj, (str, int, float, bool)): return obj
    if isinstance(obj, datetime): return obj.isoformat()
    if is_dataclass(obj): return _json_sanitize(asdict(obj))
    if isinstance(obj, Mapping): return {str(k): _json_sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)): return [_json_sanitize(v) for v in obj]
    try:
        json.dumps(obj)
        return obj
    except TypeError:
        return str(obj)
