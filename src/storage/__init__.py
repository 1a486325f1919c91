"""
Persisted learner state for practice tests.
"""

from .profile_store import ProfileStore

__all__ = ["ProfileStore"]
