# SQLAlchemy models
from .base import Base
from .practice import (
    QuestionPerformance,
    TestPreference,
    TestResultRecord,
)

__all__ = [
    # Base
    "Base",
    # Practice
    "TestPreference",
    "QuestionPerformance",
    "TestResultRecord",
]
