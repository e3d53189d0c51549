import pandas as pd
import pytest

from survey_results.db.models import QuestionDefinition, ResponseRecord


SURVEY_DEFINITION = {
    "steps": [
        {
            "id": "about-you",
            "title": "About you",
            "questions": [
                {
                    "id": "role",
                    "type": "radio",
                    "title": "What is your role?",
                    "options": [
                        {"value": "dev", "label": "Developer"},
                        {"value": "ops", "label": "Operations"},
                        {"value": "pm", "label": "Product"},
                    ],
                },
                {
                    "id": "tools",
                    "type": "checkbox",
                    "title": "Which tools do you use?",
                    "options": [
                        {"value": "git", "label": "Git"},
                        {"value": "ci", "label": "CI"},
                        {"value": "other", "label": "Other"},
                    ],
                },
            ],
        },
        {
            "id": "opinions",
            "title": "Opinions",
            "questions": [
                {
                    "id": "priorities",
                    "type": "rankOptions",
                    "title": "Rank the priorities",
                    "rankOptions": {
                        "options": [
                            {"value": "A", "label": "Speed"},
                            {"value": "B", "label": "Safety"},
                            {"value": "C", "label": "Cost"},
                        ]
                    },
                    "visualization": {"type": "irv"},
                },
                {
                    "id": "agree",
                    "type": "likert",
                    "title": "How much do you agree?",
                    "options": [
                        {"value": "s1", "label": "Statement 1"},
                        {"value": "s2", "label": "Statement 2"},
                    ],
                    "likertScale": {"min": 1, "max": 5, "labels": {"1": "Disagree", "5": "Agree"}},
                },
                {"id": "comments", "type": "longText", "title": "Anything else?"},
            ],
        },
    ]
}


@pytest.fixture
def survey_definition():
    return SURVEY_DEFINITION


@pytest.fixture
def radio_question():
    return QuestionDefinition.from_dict(SURVEY_DEFINITION["steps"][0]["questions"][0])


@pytest.fixture
def checkbox_question():
    return QuestionDefinition.from_dict(SURVEY_DEFINITION["steps"][0]["questions"][1])


@pytest.fixture
def rank_question():
    return QuestionDefinition.from_dict(SURVEY_DEFINITION["steps"][1]["questions"][0])


@pytest.fixture
def likert_question():
    return QuestionDefinition.from_dict(SURVEY_DEFINITION["steps"][1]["questions"][1])


@pytest.fixture
def matrix_question():
    return QuestionDefinition.from_dict({
        "id": "grid",
        "type": "matrix2d",
        "matrix": {
            "rows": [{"id": "r1", "label": "Row 1"}, {"id": "r2", "label": "Row 2"}],
            "columns": [{"id": "c1", "label": "Col 1"}, {"id": "c2", "label": "Col 2"}],
        },
    })


@pytest.fixture
def now():
    return pd.Timestamp("2024-06-15 12:00:00", tz="UTC")


@pytest.fixture
def records():
    return [
        ResponseRecord.from_dict({
            "id": "1",
            "label": "Alice",
            "completedAt": "2024-06-15T09:00:00Z",
            "responses": {
                "role": {"value": "dev"},
                "tools": {"value": ["git", "ci"]},
                "priorities": {"value": ["A", "B", "C"]},
                "agree": {"value": {"s1": 5, "s2": 2}},
                "comments": {"value": "Great tooling overall"},
            },
        }),
        ResponseRecord.from_dict({
            "id": "2",
            "label": "Bob",
            "completedAt": "2024-06-12T09:00:00Z",
            "responses": {
                "role": {"value": "ops"},
                "tools": {"value": {"git": True, "ci": False, "other": "svn"}},
                "priorities": {"value": ["B", "A", "C"]},
                "agree": {"value": {"s1": 4}},
            },
        }),
        ResponseRecord.from_dict({
            "id": "3",
            "label": "Carol",
            "lastModified": "2024-04-01T09:00:00Z",
            "responses": {
                "role": {"value": "dev"},
                "priorities": {"value": ["A", "C", "B"]},
                "comments": {"value": ""},
            },
        }),
        ResponseRecord.from_dict({
            "id": "4",
            "label": "Dan",
            "responses": {
                "role": {"value": "freelance"},
                "priorities": {"value": ["C", "A", "B"]},
            },
        }),
    ]
