import logging

from survey_results.db.models import QuestionDefinition
from survey_results.tools.numeric import aggregate_range_slider, aggregate_slider


class TestSlider:
    def setup_method(self):
        self.question = QuestionDefinition.from_dict({
            "id": "budget",
            "type": "multiValueSlider",
            "options": [{"value": "x", "label": "Housing"}, {"value": "z", "label": "Parks"}],
        })

    def test_option_universe_comes_from_answers(self):
        values = [
            {"x": 10, "y": 20},
            {"value": {"x": 30, "comment": "note"}},
            {"y": "n/a", "w": 5},
        ]
        agg = aggregate_slider(values, self.question)
        assert agg.options == ["x", "y", "w"]
        assert agg.labels == {"x": "Housing", "y": "y", "w": "w"}
        assert agg.total_responses == 3

        x = agg.statistics["x"]
        assert (x.average, x.min, x.max, x.count) == (20, 10, 30, 2)
        assert x.median == 20.0

        y = agg.statistics["y"]
        assert (y.average, y.min, y.max, y.count) == (20, 20, 20, 1)

    def test_falls_back_to_declared_options(self):
        agg = aggregate_slider([{}, "bad"], self.question)
        assert agg.options == ["x", "z"]
        assert agg.total_responses == 1
        for stats in agg.statistics.values():
            assert (stats.average, stats.min, stats.max, stats.count) == (0, 0, 0, 0)

    def test_option_without_numbers_reports_zeros(self):
        agg = aggregate_slider([{"x": "abc"}], self.question)
        stats = agg.statistics["x"]
        assert (stats.average, stats.min, stats.max, stats.count) == (0, 0, 0, 0)
        assert (stats.q1, stats.median, stats.q3) == (0.0, 0.0, 0.0)

    def test_average_rounds_half_up(self):
        agg = aggregate_slider([{"x": 1}, {"x": 2}], self.question)
        assert agg.statistics["x"].average == 2

    def test_scalar_value_wrapper_does_not_add_an_option(self):
        agg = aggregate_slider([{"value": 42}, {"x": 5}], self.question)
        assert agg.options == ["x"]
        assert agg.total_responses == 1

    def test_min_max_keep_answer_numbers(self):
        agg = aggregate_slider([{"x": 3}, {"x": 4.5}, {"x": 7}], self.question)
        stats = agg.statistics["x"]
        assert stats.min == 3 and isinstance(stats.min, int)
        assert stats.max == 7 and isinstance(stats.max, int)

    def test_box_plot_quartiles(self):
        agg = aggregate_slider([{"x": v} for v in (1, 2, 3, 4, 5)], self.question)
        stats = agg.statistics["x"]
        assert (stats.q1, stats.median, stats.q3) == (2.0, 3.0, 4.0)


class TestRangeSlider:
    def test_bins_and_out_of_range(self):
        q = QuestionDefinition.from_dict({
            "id": "age",
            "type": "rangeSlider",
            "rangeSlider": {"min": 10, "max": 50, "step": 10},
        })
        agg = aggregate_range_slider([10, 15.7, "49", 50, 60, 5, {"value": 20}, "x"], q)
        assert agg.bins == [10, 20, 30, 40, 50]
        assert agg.labels == ["10", "20", "30", "40", "50"]
        assert agg.data == [2, 1, 0, 1, 1]
        assert agg.total == 5
        assert agg.out_of_range == 2
        assert agg.total_responses == 7

    def test_defaults(self):
        q = QuestionDefinition.from_dict({"id": "r", "type": "rangeSlider", "rangeSlider": {}})
        agg = aggregate_range_slider([0, 100], q)
        assert len(agg.bins) == 101
        assert agg.data[0] == 1
        assert agg.data[100] == 1

    def test_missing_config_is_logged(self, caplog):
        q = QuestionDefinition.from_dict({"id": "r", "type": "rangeSlider"})
        with caplog.at_level(logging.WARNING):
            agg = aggregate_range_slider([1, 2], q)
        assert agg.bins == []
        assert agg.total == 0
        assert "missing its rangeSlider configuration" in caplog.text

    def test_empty_input(self):
        q = QuestionDefinition.from_dict({"id": "r", "type": "rangeSlider", "rangeSlider": {"min": 0, "max": 4, "step": 2}})
        agg = aggregate_range_slider([], q)
        assert agg.data == [0, 0, 0]
        assert agg.total == 0
        assert agg.out_of_range == 0
