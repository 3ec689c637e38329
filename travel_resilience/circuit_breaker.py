"""Circuit breaker pattern implementation"""

import time
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterator, Optional, TypeVar

from loguru import logger

from .config import (
    BREAKER_SETTINGS,
    CIRCUIT_BREAKER_MONITORING_PERIOD,
    CIRCUIT_BREAKER_THRESHOLD,
    CIRCUIT_BREAKER_TIMEOUT,
)
from .exceptions import CircuitOpenError
from .models import BreakerSnapshot, CircuitState

T = TypeVar("T")


class CircuitBreaker:
    """
    Circuit breaker guarding one external dependency.

    Opens after ``threshold`` consecutive failures and rejects calls until
    ``timeout`` seconds have passed. The next call after that is a single
    trial: success closes the circuit, failure opens it again.

    State is only changed by the outcome of calls made through execute()
    (and by the administrative reset()).
    """

    def __init__(
        self,
        name: str = "default",
        threshold: int = CIRCUIT_BREAKER_THRESHOLD,
        timeout: float = CIRCUIT_BREAKER_TIMEOUT,
        monitoring_period: float = CIRCUIT_BREAKER_MONITORING_PERIOD,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Dependency name for logging purposes
            threshold: Consecutive failures before opening circuit
            timeout: Seconds to stay open before allowing a trial call
            monitoring_period: Observation window in seconds, reported but not enforced
            clock: Returns the current time in seconds since the epoch
        """
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        if timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")

        self.name = name
        self.threshold = threshold
        self.timeout = timeout
        self.monitoring_period = monitoring_period
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._next_attempt = clock()
        self._trial: Optional[object] = None

        logger.debug(
            f"Circuit breaker '{name}' initialized: "
            f"threshold={threshold}, timeout={timeout}s"
        )

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Execute an async operation with circuit breaker protection.

        Raises CircuitOpenError without calling the operation while the
        circuit is open or a trial call is already in progress. Failures of
        the operation itself are re-raised unchanged.
        """
        trial = self._before_call()

        try:
            result = await operation()
        except Exception:
            self._on_failure(trial)
            raise
        except BaseException:
            # Cancelled: no verdict on the dependency, free the trial slot
            self._release_trial(trial)
            raise

        self._on_success(trial)
        return result

    def get_state(self) -> BreakerSnapshot:
        """Snapshot of the breaker; next_attempt_at is only set while OPEN"""
        next_attempt_at = None
        if self._state == CircuitState.OPEN:
            next_attempt_at = datetime.fromtimestamp(self._next_attempt)
        return BreakerSnapshot(
            state=self._state,
            failure_count=self._failure_count,
            next_attempt_at=next_attempt_at,
        )

    def reset(self) -> None:
        """Force the circuit closed"""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._next_attempt = self._clock()
        self._trial = None
        logger.info(f"Circuit '{self.name}' manually reset")

    def _before_call(self) -> Optional[object]:
        """Gate a call; returns the trial token when this call is the HALF_OPEN trial"""
        if self._state == CircuitState.OPEN:
            now = self._clock()
            if now < self._next_attempt:
                raise CircuitOpenError(self.name, self._next_attempt - now)

            logger.info(
                f"Circuit '{self.name}' transitioning to HALF_OPEN (timeout expired)"
            )
            self._state = CircuitState.HALF_OPEN

        if self._state == CircuitState.HALF_OPEN:
            if self._trial is not None:
                raise CircuitOpenError(
                    self.name,
                    0.0,
                    message=f"Circuit '{self.name}' is HALF_OPEN, trial call in progress",
                )
            self._trial = object()
            return self._trial

        return None

    def _release_trial(self, trial: Optional[object]) -> bool:
        """Free the trial slot, only if ``trial`` is the call holding it"""
        if trial is not None and trial is self._trial:
            self._trial = None
            return True
        return False

    def _on_success(self, trial: Optional[object]) -> None:
        self._failure_count = 0

        # A call started before the circuit opened cannot close it
        if self._release_trial(trial) and self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.CLOSED
            logger.success(f"Circuit '{self.name}' recovered, closing")

    def _on_failure(self, trial: Optional[object]) -> None:
        self._release_trial(trial)
        self._failure_count += 1

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.threshold:
            self._trip(self._clock())
        else:
            logger.warning(
                f"Circuit '{self.name}' failure {self._failure_count}/{self.threshold}"
            )

    def _trip(self, now: float) -> None:
        self._state = CircuitState.OPEN
        self._next_attempt = now + self.timeout
        self._trial = None
        logger.bind(
            circuit=self.name,
            failure_count=self._failure_count,
            next_attempt=datetime.fromtimestamp(self._next_attempt).isoformat(),
        ).error(
            f"Circuit '{self.name}' OPENING after {self._failure_count} failures, "
            f"next attempt in {self.timeout:.0f}s"
        )


class CircuitBreakerRegistry:
    """
    Named circuit breakers, one per external dependency.

    Built once at startup and passed to whatever needs a breaker, so no two
    dependencies share state.
    """

    def __init__(self):
        self._breakers: Dict[str, CircuitBreaker] = {}

    def register(self, breaker: CircuitBreaker) -> CircuitBreaker:
        if breaker.name in self._breakers:
            raise ValueError(f"Circuit breaker '{breaker.name}' already registered")
        self._breakers[breaker.name] = breaker
        return breaker

    def get(self, name: str) -> CircuitBreaker:
        try:
            return self._breakers[name]
        except KeyError:
            raise KeyError(f"No circuit breaker registered for '{name}'") from None

    def states(self) -> Dict[str, BreakerSnapshot]:
        return {name: breaker.get_state() for name, breaker in self._breakers.items()}

    def reset_all(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()

    def __contains__(self, name: str) -> bool:
        return name in self._breakers

    def __iter__(self) -> Iterator[str]:
        return iter(self._breakers)

    def __len__(self) -> int:
        return len(self._breakers)


def build_default_registry(
    clock: Callable[[], float] = time.time,
) -> CircuitBreakerRegistry:
    """Provision a breaker for each dependency listed in BREAKER_SETTINGS"""
    registry = CircuitBreakerRegistry()
    for name, settings in BREAKER_SETTINGS.items():
        registry.register(CircuitBreaker(name=name, clock=clock, **settings))
    return registry
