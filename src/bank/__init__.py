"""
Question bank collaborators.

The practice engine only reads lessons and questions, through the
QuestionBank protocol. create_question_bank() picks the catalog API when it
is configured and the local JSON file otherwise.
"""

from __future__ import annotations

from config import Settings, get_settings

from .catalog_client import CatalogQuestionBank
from .question_bank import (
    InMemoryQuestionBank,
    JsonQuestionBank,
    QuestionBank,
    QuestionBankError,
)


def create_question_bank(settings: Settings | None = None) -> QuestionBank:
    settings = settings or get_settings()
    if settings.has_catalog_configured():
        return CatalogQuestionBank(
            settings.catalog_api_url,
            api_key=settings.catalog_api_key,
            timeout=settings.catalog_timeout_seconds,
        )
    return JsonQuestionBank(settings.question_bank_path)


__all__ = [
    "QuestionBank",
    "QuestionBankError",
    "InMemoryQuestionBank",
    "JsonQuestionBank",
    "CatalogQuestionBank",
    "create_question_bank",
]
