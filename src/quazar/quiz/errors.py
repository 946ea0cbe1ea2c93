"""Exception types raised by the quiz engine."""

from __future__ import annotations

__all__ = [
    "QuizError",
    "BankValidationError",
    "BankNotFoundError",
    "TableFileError",
    "SessionConfigError",
    "InsufficientQuestionsError",
    "SessionStateError",
    "QuizConfigError",
]


class QuizError(RuntimeError):
    """Base class for quiz engine failures surfaced to the caller."""


class BankValidationError(QuizError):
    """Raised when a question bank is malformed; the whole bank is rejected."""


class BankNotFoundError(QuizError):
    """Raised when a named bank is not present in the catalog."""


class TableFileError(QuizError):
    """Raised when a table file is malformed or holds no table questions."""


class SessionConfigError(QuizError):
    """Raised when per-type counts or enabled types are inconsistent."""


class InsufficientQuestionsError(QuizError):
    """Raised when more questions are requested than the pool can supply."""


class SessionStateError(QuizError):
    """Raised when a session operation is invoked in the wrong state.

    These indicate a caller defect rather than bad user input.
    """


class QuizConfigError(QuizError):
    """Raised when quazar.toml or its environment overrides are invalid."""
