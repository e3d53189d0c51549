from __future__ import annotations


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class DefinitionError(AppError):
    # Raised when a survey definition or results payload is unreadable or fails schema validation.
    pass


class UnsupportedQuestionType(AppError):
    # Raised when the aggregation dispatcher gets a question type it has no reducer for.
    pass


class InvalidFilter(AppError):
    # Raised for unknown date-range keys or malformed filter state.
    pass


class PreferenceStoreError(AppError):
    # Raised when view preferences cannot be written or an import payload is invalid.
    pass
