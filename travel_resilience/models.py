"""Data models and enums for the resilience layer"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .config import BACKOFF_MULTIPLIER, MAX_RETRIES, RETRY_DELAY, RETRYABLE_ERRORS


class ErrorCode(str, Enum):
    """Machine-readable error codes, one per error type"""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if recovered


@dataclass(frozen=True)
class BreakerSnapshot:
    """Read-only view of a circuit breaker"""

    state: CircuitState
    failure_count: int
    next_attempt_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "next_attempt_at": (
                self.next_attempt_at.isoformat() if self.next_attempt_at else None
            ),
        }


@dataclass
class RetryOptions:
    """Per-call retry configuration (delays in seconds)"""

    max_retries: int = MAX_RETRIES
    retry_delay: float = RETRY_DELAY
    backoff_multiplier: float = BACKOFF_MULTIPLIER
    retryable_errors: FrozenSet[str] = field(default_factory=lambda: RETRYABLE_ERRORS)

    def __post_init__(self):
        if isinstance(self.retryable_errors, str):
            raise TypeError(
                "retryable_errors must be a collection of identifiers, not a single string"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.backoff_multiplier < 0:
            raise ValueError(
                f"backoff_multiplier must be >= 0, got {self.backoff_multiplier}"
            )
        self.retryable_errors = frozenset(self.retryable_errors)
