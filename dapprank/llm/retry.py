"""Retry policy for classifier calls.

Transient failures (unparseable responses, timeouts, connection errors)
retry quickly up to a fixed bound. Rate limit rejections wait a full
cooldown and have their own, smaller bound. Quota exhaustion and context
overflow are terminal for the retry loop.
"""
import logging
from dataclasses import dataclass, field

from ..exceptions import ClassifierError, ContextOverflowError, QuotaExhaustedError, RateLimitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    transient_retries: int = 3
    transient_delay: float = 1.0
    rate_limit_retries: int = 2
    rate_limit_cooldown: float = 60.0

    def start(self) -> "RetryState":
        return RetryState(self)


@dataclass
class RetryState:
    policy: RetryPolicy
    transient_attempts: int = 0
    rate_limit_attempts: int = 0
    errors: list[Exception] = field(default_factory=list)

    def next_delay(self, error: Exception) -> float | None:
        """Seconds to wait before retrying after ``error``, or None to give up."""
        self.errors.append(error)
        if isinstance(error, (QuotaExhaustedError, ContextOverflowError)):
            return None
        if isinstance(error, RateLimitError):
            if self.rate_limit_attempts >= self.policy.rate_limit_retries:
                return None
            self.rate_limit_attempts += 1
            return self.policy.rate_limit_cooldown
        if isinstance(error, ClassifierError):
            if self.transient_attempts >= self.policy.transient_retries:
                return None
            self.transient_attempts += 1
            return self.policy.transient_delay
        return None

    @property
    def attempts(self) -> int:
        return len(self.errors) + 1
