"""
Practice engine errors.

All errors are session-local: the caller can always recover by returning to
configuration or by retrying the persistence step.
"""

from __future__ import annotations


class PracticeError(Exception):
    """Base class for practice engine errors."""
    pass


class InvalidConfigError(PracticeError):
    """Raised when a submitted test configuration fails validation."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(f"Invalid test configuration ({detail})")


class NoQuestionsAvailableError(PracticeError):
    """Raised when the mixture filter leaves no candidate questions."""

    def __init__(self, mixture: str, pool_size: int = 0):
        self.mixture = mixture
        self.pool_size = pool_size
        super().__init__(
            f"No questions match mixture '{mixture}' "
            f"({pool_size} candidates before filtering)"
        )


class PersistenceError(PracticeError):
    """Raised when the ledger update or result append could not be stored."""
    pass


class SessionStateError(PracticeError):
    """Raised when an operation is not allowed in the current phase."""
    pass
