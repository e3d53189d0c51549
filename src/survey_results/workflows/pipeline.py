# src/survey_results/workflows/pipeline.py
"""
One report pass: filter responses, then aggregate every question for its view.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union
from uuid import uuid4

from ..app.config import Settings
from ..app.errors import UnsupportedQuestionType
from ..app.logging import clear_pass_id, set_pass_id
from ..db.models import (
    CHECKBOX,
    LIKERT,
    LONG_TEXT,
    MATRIX_2D,
    MULTI_VALUE_SLIDER,
    RADIO,
    RANGE_SLIDER,
    RANK_OPTIONS,
    SHORT_TEXT,
    TAGS,
    QuestionDefinition,
)
from ..db.loader import load_results, load_survey_definition
from ..db.preferences import PreferenceStore, resolve_view
from ..tools.aggregators import (
    aggregate_checkbox,
    aggregate_likert,
    aggregate_matrix,
    aggregate_radio,
    aggregate_tags,
    aggregate_text,
    overview_stats,
)
from ..tools.filters import FilterState, apply_filters, identify_filterable_questions
from ..tools.normalize import extract_question_values
from ..tools.numeric import aggregate_range_slider, aggregate_slider
from ..tools.ranking import compute_borda, compute_irv
from .state import QuestionResult, ResultsContext, ResultsReport

logger = logging.getLogger(__name__)


def aggregate(
    question_type: str,
    values: Sequence[Any],
    question: QuestionDefinition,
    labels: Optional[Sequence[Optional[str]]] = None,
    view: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Any:
    settings = settings or Settings()

    if question_type == RADIO:
        return aggregate_radio(values, question, labels)
    if question_type == CHECKBOX:
        return aggregate_checkbox(values, question, labels)
    if question_type in (SHORT_TEXT, LONG_TEXT):
        # The list view shows every answer; the word cloud only a sample.
        sample = None if view == "list" else settings.text_sample_size
        return aggregate_text(values, question, labels, top_k=settings.top_words_limit, sample_size=sample)
    if question_type == TAGS:
        return aggregate_tags(values, question, labels)
    if question_type == MATRIX_2D:
        return aggregate_matrix(values, question, labels)
    if question_type == LIKERT:
        return aggregate_likert(values, question, labels)
    if question_type == MULTI_VALUE_SLIDER:
        return aggregate_slider(values, question, labels)
    if question_type == RANGE_SLIDER:
        return aggregate_range_slider(values, question, labels)
    if question_type == RANK_OPTIONS:
        if view == "irv":
            return compute_irv(values, question)
        return compute_borda(values, question)

    raise UnsupportedQuestionType(f"Unsupported question type: {question_type!r}")


def _question_result(question: QuestionDefinition, view: Optional[str], **kwargs: Any) -> QuestionResult:
    return QuestionResult(
        question_id=question.id,
        title=question.title,
        type=question.type,
        step_id=question.step_id,
        step_title=question.step_title,
        view=view,
        **kwargs,
    )


def load_context(
    definition_path: Union[str, Path],
    results_path: Union[str, Path],
    filters: Optional[FilterState] = None,
    settings: Optional[Settings] = None,
) -> ResultsContext:
    # Files plus the stored view preferences, ready for build_report.
    settings = settings or Settings.from_env()
    return ResultsContext(
        questions=load_survey_definition(definition_path),
        responses=load_results(results_path),
        filters=filters or FilterState(),
        preferences=PreferenceStore(settings.preferences_path).get_all(),
        settings=settings,
    )


def build_report(context: ResultsContext, pass_id: Optional[str] = None) -> ResultsReport:
    """
    Aggregate every question of the survey over the filtered responses.

    A question of unknown type is reported with an `error` and does not stop
    the pass. Filter errors (e.g. an unknown date range) are raised.
    """
    pass_id = pass_id or str(uuid4())
    set_pass_id(pass_id)
    try:
        settings = context.settings
        records = apply_filters(context.responses, context.filters, now=context.now, tz=settings.timezone)
        logger.info(
            "Building results report",
            extra={
                "questions": len(context.questions),
                "responses": len(context.responses),
                "filtered_responses": len(records),
                "date_range": context.filters.date_range,
            },
        )

        results: List[QuestionResult] = []
        failed = 0
        for question in context.questions:
            view = resolve_view(question, context.preferences)
            extracted = extract_question_values(records, question.id)
            try:
                agg = aggregate(
                    question.type,
                    extracted.values,
                    question,
                    extracted.labels,
                    view=view,
                    settings=settings,
                )
            except UnsupportedQuestionType as e:
                failed += 1
                logger.warning(
                    "Skipping question with unsupported type",
                    extra={"question_id": question.id, "question_type": question.type},
                )
                results.append(_question_result(question, view, error=str(e)))
                continue
            results.append(_question_result(question, view, aggregate=agg))

        filterable = identify_filterable_questions(context.questions, max_options=settings.filterable_max_options)
        report = ResultsReport(
            overview=overview_stats(records, tz=settings.timezone),
            questions=results,
            filterable_questions=[q.id for q in filterable],
            pass_id=pass_id,
        )
        logger.info("Results report built", extra={"aggregated": len(results) - failed, "failed": failed})
        return report
    finally:
        clear_pass_id()
