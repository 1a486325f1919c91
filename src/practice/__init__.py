"""
Adaptive practice tests.

Provides:
- Test configuration and validation
- Mixture-based question selection over a learner's performance ledger
- The per-question session state machine with an optional countdown
- Result compilation, ledger classification and display summaries
"""

from src.practice.engine import PracticeEngine
from src.practice.errors import (
    InvalidConfigError,
    NoQuestionsAvailableError,
    PersistenceError,
    PracticeError,
    SessionStateError,
)
from src.practice.models import (
    Answer,
    Classification,
    FeedbackMode,
    IncludeScope,
    LedgerUpdate,
    Lesson,
    PerformanceRecord,
    Phase,
    Question,
    QuestionMixture,
    TestResult,
)
from src.practice.practice_config import TestConfig, default_test_config, validate_test_config
from src.practice.session import AdvanceOutcome, PracticeSession

__all__ = [
    "PracticeEngine",
    "PracticeSession",
    "AdvanceOutcome",
    "TestConfig",
    "default_test_config",
    "validate_test_config",
    # Models
    "Answer",
    "Classification",
    "FeedbackMode",
    "IncludeScope",
    "LedgerUpdate",
    "Lesson",
    "PerformanceRecord",
    "Phase",
    "Question",
    "QuestionMixture",
    "TestResult",
    # Errors
    "PracticeError",
    "InvalidConfigError",
    "NoQuestionsAvailableError",
    "PersistenceError",
    "SessionStateError",
]
