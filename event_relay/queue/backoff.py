from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from event_relay.config import MAX_BACKOFF_SECONDS

if TYPE_CHECKING:
    from datetime import datetime

    from event_relay.config import Settings
    from event_relay.queue.models import QueueMessage

# 2**32 seconds is far beyond any usable ceiling
_MAX_EXPONENT = 32


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential visibility delay for deferred messages.

    The queue's retention period (days) bounds the total retry window, so the
    ceiling has to stay well below it for several attempts to happen.
    """

    base_delay: int = 30
    max_delay: int = MAX_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        if self.base_delay < 1:
            raise ValueError("base_delay must be at least one second")
        if not 1 <= self.max_delay <= MAX_BACKOFF_SECONDS:
            raise ValueError(
                f"max_delay must be between 1 and {MAX_BACKOFF_SECONDS} seconds"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> BackoffPolicy:
        return cls(
            base_delay=settings.backoff_base_seconds,
            max_delay=settings.backoff_max_seconds,
        )

    def delay(self, attempt: int) -> int:
        """Visibility delay in seconds after the given (1-based) attempt."""
        exponent = min(max(attempt, 1) - 1, _MAX_EXPONENT)
        return min(self.max_delay, self.base_delay * 2**exponent)

    def attempt_for(self, message: QueueMessage, now: datetime | None = None) -> int:
        """Number of the current attempt.

        Uses the receive count when the queue reports it. Otherwise the first
        attempt whose delay reaches the message age is assumed.
        """
        if message.approximate_receive_count:
            return message.approximate_receive_count
        age = message.age_seconds(now)
        attempt = 1
        while self.delay(attempt) < min(age, self.max_delay):
            attempt += 1
        return attempt

    def delay_for(self, message: QueueMessage, now: datetime | None = None) -> int:
        return self.delay(self.attempt_for(message, now))
