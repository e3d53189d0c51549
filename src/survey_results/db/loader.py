# src/survey_results/db/loader.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import jsonschema

from ..app.errors import DefinitionError
from .models import QuestionDefinition, ResponseRecord

logger = logging.getLogger(__name__)


_QUESTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "type"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "type": {"type": "string"},
        "title": {"type": ["string", "null"]},
        "options": {
            "type": "array",
            "items": {"type": "object", "required": ["value"]},
        },
        "matrix": {
            "type": "object",
            "properties": {
                "rows": {"type": "array", "items": {"type": "object", "required": ["id"]}},
                "columns": {"type": "array", "items": {"type": "object", "required": ["id"]}},
            },
        },
        "likertScale": {
            "type": "object",
            "required": ["min", "max"],
            "properties": {
                "min": {"type": "integer"},
                "max": {"type": "integer"},
                "labels": {"type": "object"},
            },
        },
        "rankOptions": {
            "type": "object",
            "properties": {"options": {"type": "array", "items": {"type": "object", "required": ["value"]}}},
        },
        "rangeSlider": {
            "type": "object",
            "properties": {
                "min": {"type": "number"},
                "max": {"type": "number"},
                "step": {"type": "number"},
            },
        },
        "visualization": {"type": "object"},
    },
}

DEFINITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": ["string", "number"]},
                    "title": {"type": ["string", "null"]},
                    "questions": {"type": "array", "items": _QUESTION_SCHEMA},
                },
            },
        },
        "questions": {"type": "array", "items": _QUESTION_SCHEMA},
    },
    "anyOf": [{"required": ["steps"]}, {"required": ["questions"]}],
}

_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id"],
    "properties": {
        "id": {"type": ["string", "number"]},
        "label": {"type": ["string", "null"]},
        "completedAt": {"type": ["string", "null"]},
        "lastModified": {"type": ["string", "null"]},
        "responses": {"type": "object"},
    },
}

RESULTS_SCHEMA: Dict[str, Any] = {
    "oneOf": [
        {"type": "array", "items": _RESPONSE_SCHEMA},
        {
            "type": "object",
            "required": ["responses"],
            "properties": {"responses": {"type": "array", "items": _RESPONSE_SCHEMA}},
        },
    ],
}


def validate_with_jsonschema(payload: Any, schema: Dict[str, Any], what: str) -> None:
    try:
        jsonschema.validate(instance=payload, schema=schema)
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise DefinitionError(f"Invalid {what} at {where}: {e.message}") from e


def parse_survey_definition(payload: Dict[str, Any]) -> List[QuestionDefinition]:
    """
    Flatten a survey definition into its ordered question list.

    Questions inside `steps` inherit their step's id and title. A payload with a
    top-level `questions` list is read as a single anonymous step; when both are
    present, step questions come first.
    """
    validate_with_jsonschema(payload, DEFINITION_SCHEMA, "survey definition")

    questions: List[QuestionDefinition] = []
    for step in payload.get("steps") or []:
        for q in step.get("questions") or []:
            questions.append(QuestionDefinition.from_dict(q, step=step))
    for q in payload.get("questions") or []:
        questions.append(QuestionDefinition.from_dict(q))

    seen = set()
    for q in questions:
        if q.id in seen:
            raise DefinitionError(f"Duplicate question id in survey definition: {q.id}")
        seen.add(q.id)

    logger.debug("Parsed survey definition", extra={"questions": len(questions)})
    return questions


def parse_results(payload: Union[Dict[str, Any], List[Any]]) -> List[ResponseRecord]:
    validate_with_jsonschema(payload, RESULTS_SCHEMA, "survey results")
    items = payload if isinstance(payload, list) else payload["responses"]
    return [ResponseRecord.from_dict(item) for item in items]


def _read_json(path: Union[str, Path]) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise DefinitionError(f"Failed to read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DefinitionError(f"Failed to decode JSON in {path}: {e}") from e


def load_survey_definition(path: Union[str, Path]) -> List[QuestionDefinition]:
    return parse_survey_definition(_read_json(path))


def load_results(path: Union[str, Path]) -> List[ResponseRecord]:
    return parse_results(_read_json(path))
