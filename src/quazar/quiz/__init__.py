"""Public APIs for the quiz engine."""

from __future__ import annotations

from ._main import build_arg_parser
from .bank import (
    BankCatalog,
    BankEntry,
    display_name,
    format_quiz_name,
    load_bank,
    load_table_file,
    parse_bank,
    parse_table_file,
)
from .builder import (
    bank_answers,
    build_session,
    distribute_counts,
    filter_unique_answers,
    validate_type_counts,
)
from .config import (
    ConfigOverrides,
    LoadResult,
    QuizConfig,
    SessionConfig,
    TableConfig,
    load_config,
)
from .errors import (
    BankNotFoundError,
    BankValidationError,
    InsufficientQuestionsError,
    QuizConfigError,
    QuizError,
    SessionConfigError,
    SessionStateError,
    TableFileError,
)
from .history import (
    HistoryEntry,
    HistoryStore,
    HistorySummary,
    SessionResult,
    compute_result,
)
from .models import (
    SECTION_ORDER,
    AnswerState,
    QuestionRecord,
    QuizType,
    SessionQuestion,
    TableRecord,
)
from .options import (
    build_table_options,
    generate_options,
    pick_displayed_statement,
)
from .runner import RunnerResult, run_quiz_session
from .session import (
    QuizSession,
    Section,
    SessionState,
    SubmitOutcome,
    advance_state,
    first_state,
    start_section_state,
)
from .text import normalize_answer, normalize_for_comparison, similarity_score

__all__ = [
    "build_arg_parser",
    "BankCatalog",
    "BankEntry",
    "display_name",
    "format_quiz_name",
    "load_bank",
    "load_table_file",
    "parse_bank",
    "parse_table_file",
    "bank_answers",
    "build_session",
    "distribute_counts",
    "filter_unique_answers",
    "validate_type_counts",
    "ConfigOverrides",
    "LoadResult",
    "QuizConfig",
    "SessionConfig",
    "TableConfig",
    "load_config",
    "BankNotFoundError",
    "BankValidationError",
    "InsufficientQuestionsError",
    "QuizConfigError",
    "QuizError",
    "SessionConfigError",
    "SessionStateError",
    "TableFileError",
    "HistoryEntry",
    "HistoryStore",
    "HistorySummary",
    "SessionResult",
    "compute_result",
    "SECTION_ORDER",
    "AnswerState",
    "QuestionRecord",
    "QuizType",
    "SessionQuestion",
    "TableRecord",
    "build_table_options",
    "generate_options",
    "pick_displayed_statement",
    "RunnerResult",
    "run_quiz_session",
    "QuizSession",
    "Section",
    "SessionState",
    "SubmitOutcome",
    "advance_state",
    "first_state",
    "start_section_state",
    "normalize_answer",
    "normalize_for_comparison",
    "similarity_score",
]
