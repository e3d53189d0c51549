# src/survey_results/db/preferences.py
"""
Per-question view preferences, persisted as a small JSON file.

The export format matches the `visualization` block of a survey definition,
so an exported file can be pasted back into the definition as defaults.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import jsonschema

from ..app.errors import PreferenceStoreError
from .models import DEFAULT_VISUALIZATION, RANK_OPTIONS, VISUALIZATION_TYPES, QuestionDefinition

logger = logging.getLogger(__name__)


# {questionId: {"visualization": {"type": ..., "options": {...}}}}
IMPORT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": {
        "type": "object",
        "properties": {
            "visualization": {
                "type": "object",
                "properties": {
                    "type": {"type": "string"},
                    "options": {"type": "object"},
                },
            },
        },
    },
}


@dataclass(frozen=True)
class ViewPreference:
    type: str
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "options": dict(self.options)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "ViewPreference":
        options = d.get("options")
        return ViewPreference(type=str(d["type"]), options=dict(options) if isinstance(options, Mapping) else {})


class PreferenceStore:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get_all(self) -> Dict[str, ViewPreference]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to read view preferences", extra={"path": str(self.path), "error": str(e)})
            return {}
        if not isinstance(raw, Mapping):
            logger.error("View preference file is not a JSON object", extra={"path": str(self.path)})
            return {}

        out: Dict[str, ViewPreference] = {}
        for qid, entry in raw.items():
            if isinstance(entry, Mapping) and entry.get("type"):
                out[str(qid)] = ViewPreference.from_dict(entry)
        return out

    def get(self, question_id: str) -> Optional[ViewPreference]:
        return self.get_all().get(question_id)

    def save(self, question_id: str, view_type: str, options: Optional[Mapping[str, Any]] = None) -> None:
        prefs = self.get_all()
        prefs[question_id] = ViewPreference(type=view_type, options=dict(options or {}))
        self._write(prefs)

    def clear(self) -> None:
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError as e:
            raise PreferenceStoreError(f"Failed to clear view preferences: {e}") from e

    def export_json(self) -> str:
        payload = {qid: {"visualization": pref.to_dict()} for qid, pref in self.get_all().items()}
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> int:
        """
        Replace stored preferences with the ones in `text` (export format).
        Entries without a visualization type are skipped. Returns the number imported.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PreferenceStoreError(f"Invalid preference JSON: {e}") from e
        try:
            jsonschema.validate(instance=data, schema=IMPORT_SCHEMA)
        except jsonschema.ValidationError as e:
            raise PreferenceStoreError(f"Invalid preference JSON: {e.message}") from e

        prefs: Dict[str, ViewPreference] = {}
        for qid, entry in data.items():
            viz = entry.get("visualization")
            if viz and viz.get("type"):
                prefs[str(qid)] = ViewPreference.from_dict(viz)

        self._write(prefs)
        logger.info("Imported view preferences", extra={"count": len(prefs)})
        return len(prefs)

    def _write(self, prefs: Mapping[str, ViewPreference]) -> None:
        payload = {qid: pref.to_dict() for qid, pref in prefs.items()}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise PreferenceStoreError(f"Failed to write view preferences: {e}") from e


def available_views(question_type: str) -> Tuple[str, ...]:
    views = VISUALIZATION_TYPES.get(question_type, ())
    if question_type == RANK_OPTIONS and "irv" not in views:
        views = views + ("irv",)
    return views


def resolve_view(
    question: QuestionDefinition,
    preferences: Optional[Mapping[str, ViewPreference]] = None,
) -> Optional[str]:
    # Stored preference, then the definition's default, then the type default.
    preferred = (preferences or {}).get(question.id)
    candidates = (
        preferred.type if preferred else None,
        (question.visualization or {}).get("type"),
        DEFAULT_VISUALIZATION.get(question.type),
    )
    allowed = available_views(question.type)
    for view in candidates:
        if not view:
            continue
        if view in allowed:
            return view
        logger.debug("Ignoring view not available for question type",
                     extra={"question_id": question.id, "view": view, "question_type": question.type})
    return None
