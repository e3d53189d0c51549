import logging

from survey_results.db.models import QuestionDefinition
from survey_results.tools.ranking import compute_borda, compute_irv


def _rank_question(*ids):
    return QuestionDefinition.from_dict({
        "id": "rank",
        "type": "rankOptions",
        "rankOptions": {"options": [{"value": i, "label": f"Option {i}"} for i in ids]},
    })


class TestBorda:
    def setup_method(self):
        self.question = _rank_question("A", "B", "C")

    def test_single_ballot_points(self):
        result = compute_borda([["A", "B", "C"]], self.question)
        by_id = {r.option_id: r for r in result.rankings}
        assert by_id["A"].points == 3
        assert by_id["B"].points == 2
        assert by_id["C"].points == 1
        assert by_id["A"].position_counts == [1, 0, 0]
        assert by_id["B"].position_counts == [0, 1, 0]
        assert by_id["C"].position_counts == [0, 0, 1]
        assert result.total_responses == 1
        assert result.option_count == 3

    def test_points_are_additive(self):
        one = compute_borda([["A", "B", "C"]], self.question)
        two = compute_borda([["C", "B", "A"]], self.question)
        both = compute_borda([["A", "B", "C"], ["C", "B", "A"]], self.question)
        points = lambda res: {r.option_id: r.points for r in res.rankings}
        for option in ("A", "B", "C"):
            assert points(both)[option] == points(one)[option] + points(two)[option]

    def test_all_ballot_shapes(self):
        values = [
            ["B", "A", "C"],
            [{"id": "B", "rank": 1}, {"id": "C", "rank": 2}, {"id": "A", "rank": 3}],
            {"A": 2, "B": 1, "C": 3},
        ]
        result = compute_borda(values, self.question)
        assert [r.option_id for r in result.rankings] == ["B", "A", "C"]
        assert result.rankings[0].points == 9
        assert result.total_responses == 3

    def test_ties_keep_declaration_order(self):
        result = compute_borda([["C", "A"], ["A", "C"]], self.question)
        assert [r.option_id for r in result.rankings] == ["A", "C", "B"]
        assert result.rankings[0].points == result.rankings[1].points

    def test_malformed_ballots_are_excluded(self):
        result = compute_borda(["A", 7, ["A", "B", "C"]], self.question)
        assert result.total_responses == 1

    def test_unknown_options_are_ignored(self):
        result = compute_borda([["Z", "A"]], self.question)
        by_id = {r.option_id: r for r in result.rankings}
        assert by_id["A"].points == 2
        assert "Z" not in by_id

    def test_falls_back_to_plain_options(self):
        q = QuestionDefinition.from_dict({"id": "r", "type": "rankOptions", "options": [{"value": "x"}, {"value": "y"}]})
        result = compute_borda([["y", "x"]], q)
        assert [r.option_id for r in result.rankings] == ["y", "x"]

    def test_idempotent(self):
        values = [["A", "B", "C"], ["B", "C", "A"]]
        assert compute_borda(values, self.question) == compute_borda(values, self.question)


class TestIRV:
    def setup_method(self):
        self.question = _rank_question("A", "B", "C")

    def test_tied_minimum_is_eliminated_together(self):
        ballots = [["A", "B", "C"], ["B", "A", "C"], ["A", "C", "B"], ["C", "A", "B"]]
        result = compute_irv(ballots, self.question)
        assert result.winner == "A"
        assert len(result.rounds) == 1
        first = result.rounds[0]
        assert first.counts == {"A": 2, "B": 1, "C": 1}
        assert first.total_votes == 4
        assert first.eliminated == ["B", "C"]

    def test_full_tie_has_no_winner(self, caplog):
        q = _rank_question("A", "B")
        with caplog.at_level(logging.INFO):
            result = compute_irv([["A"], ["B"]], q)
        assert result.winner is None
        assert len(result.rounds) == 1
        assert result.rounds[0].eliminated == ["A", "B"]
        assert "complete tie" in caplog.text

    def test_votes_transfer_after_elimination(self):
        q = _rank_question("A", "B", "C", "D")
        ballots = [
            ["A", "B"], ["A", "B"], ["A", "B"],
            ["B", "C"], ["B", "C"],
            ["C", "B"], ["C", "B"],
            ["D", "C"],
        ]
        result = compute_irv(ballots, q)
        assert [r.counts for r in result.rounds] == [
            {"A": 3, "B": 2, "C": 2, "D": 1},
            {"A": 3, "B": 2, "C": 3},
            {"A": 3, "C": 5},
        ]
        assert [r.eliminated for r in result.rounds] == [["D"], ["B"], ["A"]]
        assert result.winner == "C"

    def test_exhausted_ballots_still_count_in_total(self):
        ballots = [["A"], ["A"], ["B"], ["C", "B"]]
        result = compute_irv(ballots, self.question)
        assert result.rounds[0].eliminated == ["B", "C"]
        assert result.winner == "A"
        assert all(r.total_votes == 4 for r in result.rounds)

    def test_single_candidate_wins_without_rounds(self):
        result = compute_irv([["A"]], _rank_question("A"))
        assert result.winner == "A"
        assert result.rounds == []

    def test_no_ballots(self):
        result = compute_irv([], self.question)
        assert result.winner is None
        assert result.rounds[0].counts == {"A": 0, "B": 0, "C": 0}

    def test_deterministic(self):
        ballots = [["B", "A"], ["A", "B"], ["C"], ["C", "A"]]
        assert compute_irv(ballots, self.question) == compute_irv(ballots, self.question)
