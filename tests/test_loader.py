import json

import pytest

from survey_results.app.errors import DefinitionError
from survey_results.db.loader import (
    load_results,
    load_survey_definition,
    parse_results,
    parse_survey_definition,
)


class TestSurveyDefinition:
    def test_steps_are_flattened_in_order(self, survey_definition):
        questions = parse_survey_definition(survey_definition)
        assert [q.id for q in questions] == ["role", "tools", "priorities", "agree", "comments"]
        assert questions[0].step_id == "about-you"
        assert questions[2].step_title == "Opinions"
        assert questions[2].visualization == {"type": "irv"}
        assert [o.value for o in questions[2].ranked_options] == ["A", "B", "C"]
        assert questions[3].likert_scale.values == [1, 2, 3, 4, 5]

    def test_top_level_questions(self):
        questions = parse_survey_definition({"questions": [{"id": "q1", "type": "radio", "options": [{"value": "a"}]}]})
        assert len(questions) == 1
        assert questions[0].step_id is None
        assert questions[0].options[0].label == "a"

    def test_unknown_types_are_accepted(self):
        questions = parse_survey_definition({"questions": [{"id": "q1", "type": "signature"}]})
        assert questions[0].type == "signature"

    @pytest.mark.parametrize("payload", [
        {},
        [],
        {"questions": [{"type": "radio"}]},
        {"questions": [{"id": "q1", "type": "radio", "options": [{"label": "no value"}]}]},
        {"questions": [{"id": "q1", "type": "likert", "likertScale": {"min": "one", "max": 5}}]},
        {"steps": "nope"},
    ])
    def test_invalid_payloads(self, payload):
        with pytest.raises(DefinitionError):
            parse_survey_definition(payload)

    def test_duplicate_ids(self):
        with pytest.raises(DefinitionError, match="Duplicate question id"):
            parse_survey_definition({"questions": [{"id": "q", "type": "radio"}, {"id": "q", "type": "tags"}]})

    def test_error_names_the_location(self):
        with pytest.raises(DefinitionError, match="questions/0"):
            parse_survey_definition({"questions": [{"id": 5, "type": "radio"}]})


class TestResults:
    def test_wrapped_and_bare_lists(self):
        item = {"id": "r1", "label": "Alice", "completedAt": "2024-01-01T00:00:00Z", "responses": {"q": {"value": "a"}}}
        wrapped = parse_results({"responses": [item]})
        bare = parse_results([item])
        assert wrapped == bare
        assert wrapped[0].value_for("q") == "a"
        assert wrapped[0].timestamp == "2024-01-01T00:00:00Z"

    def test_numeric_ids_become_strings(self):
        assert parse_results([{"id": 7}])[0].id == "7"

    def test_invalid(self):
        with pytest.raises(DefinitionError):
            parse_results({"results": []})
        with pytest.raises(DefinitionError):
            parse_results([{"label": "no id"}])


class TestFiles:
    def test_round_trip(self, tmp_path, survey_definition):
        path = tmp_path / "survey.json"
        path.write_text(json.dumps(survey_definition), encoding="utf-8")
        assert len(load_survey_definition(path)) == 5

        results = tmp_path / "results.json"
        results.write_text(json.dumps({"responses": [{"id": "1"}]}), encoding="utf-8")
        assert [r.id for r in load_results(results)] == ["1"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(DefinitionError, match="Failed to read"):
            load_survey_definition(tmp_path / "missing.json")

    def test_bad_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DefinitionError, match="Failed to decode"):
            load_results(path)
