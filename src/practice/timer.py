"""
Per-question countdown for timed practice tests.

The timer has no clock of its own: it is advanced by explicit tick() calls,
one second per tick, so it stays in step with the single-threaded session.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class QuestionTimer:
    """Suspendable countdown that reports expiry once per question."""

    duration: int = 50
    warning_ratio: float = 0.2
    remaining: int = 0
    suspended: bool = False
    expired: bool = False
    stopped: bool = False

    def __post_init__(self) -> None:
        if self.duration < 1:
            raise ValueError("duration must be at least one second")
        self.remaining = self.duration

    @property
    def warning_threshold(self) -> int:
        """Seconds left at which the near-expiry warning starts."""
        return math.ceil(round(self.duration * self.warning_ratio, 6))

    @property
    def is_warning(self) -> bool:
        return not self.stopped and self.remaining <= self.warning_threshold

    @property
    def is_running(self) -> bool:
        return not (self.stopped or self.expired or self.suspended)

    @property
    def progress_percent(self) -> float:
        return self.remaining / self.duration * 100

    def tick(self) -> bool:
        """
        Count down one second.

        Returns:
            True only on the tick that reaches zero
        """
        if not self.is_running:
            return False

        self.remaining = max(0, self.remaining - 1)
        if self.remaining == 0:
            self.expired = True
            return True
        return False

    def suspend(self) -> None:
        self.suspended = True

    def resume(self) -> None:
        self.suspended = False

    def reset(self) -> None:
        """Restart the countdown for a new question."""
        self.remaining = self.duration
        self.suspended = False
        self.expired = False
        self.stopped = False

    def stop(self) -> None:
        """Make the timer quiescent; later ticks are ignored."""
        self.stopped = True

    def format_remaining(self) -> str:
        minutes, seconds = divmod(self.remaining, 60)
        return f"{minutes}:{seconds:02d}"
