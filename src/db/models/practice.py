"""
Practice test persistence models.

Implements:
- TestPreference: last used test configuration per profile
- QuestionPerformance: per-question ledger counters per profile
- TestResultRecord: append-only history of completed practice tests

Ledger invariant (enforced by a check constraint):
    total_attempts = correct + wrong + doubt
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TestPreference(Base):
    """Last test configuration a profile submitted."""

    __tablename__ = "test_preferences"

    profile_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<TestPreference(profile={self.profile_id})>"


class QuestionPerformance(Base):
    """Aggregate attempt counters for one question of one profile."""

    __tablename__ = "question_performance"
    __table_args__ = (
        CheckConstraint(
            "total_attempts = correct + wrong + doubt",
            name="ck_question_performance_totals",
        ),
        CheckConstraint(
            "correct >= 0 AND wrong >= 0 AND doubt >= 0",
            name="ck_question_performance_non_negative",
        ),
    )

    profile_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    question_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    total_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wrong: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    doubt: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<QuestionPerformance({self.profile_id}/{self.question_id}: "
            f"{self.correct}c {self.wrong}w {self.doubt}d)>"
        )


class TestResultRecord(Base):
    """One completed practice test."""

    __tablename__ = "test_results"
    __table_args__ = (
        Index("ix_test_results_profile_created", "profile_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(String(100), nullable=False)
    lesson_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    question_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    answers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<TestResultRecord({self.id}: {self.score}/{self.total_questions})>"
