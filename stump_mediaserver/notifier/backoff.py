"""Reconnect timing and failure tracking for the event notifiers.

Circuit states:
    CLOSED    - normal operation, consecutive failures are counted.
    OPEN      - the push channel is considered down; notifiers degrade.
    HALF_OPEN - cooldown elapsed, one reconnect attempt is allowed through.

    CLOSED -> OPEN       when failure_count >= failure_threshold
    OPEN -> HALF_OPEN    when cooldown_seconds have elapsed
    HALF_OPEN -> CLOSED  when the trial attempt succeeds
    HALF_OPEN -> OPEN    when the trial attempt fails
"""
import logging
import random
import threading
import time
from enum import Enum
from typing import Callable, Optional

from ..config import settings

logger = logging.getLogger(__name__)


class ExponentialBackoff:
    """Delay doubles (by `factor`) per failure up to `maximum`, with +/- `jitter` spread."""

    def __init__(
        self,
        initial: float,
        maximum: float,
        factor: float = 2.0,
        jitter: float = 0.1,
        max_attempts: Optional[int] = None,
        rand: Callable[[], float] = random.random,
    ):
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.jitter = jitter
        self.max_attempts = max_attempts
        self._rand = rand
        self.attempt = 0
        self._base = initial

    @classmethod
    def from_settings(cls) -> "ExponentialBackoff":
        return cls(
            initial=settings.RECONNECT_INITIAL_DELAY_SECONDS,
            maximum=settings.RECONNECT_MAX_DELAY_SECONDS,
            factor=settings.RECONNECT_BACKOFF_FACTOR,
            jitter=settings.RECONNECT_JITTER,
            max_attempts=settings.RECONNECT_MAX_ATTEMPTS,
        )

    @property
    def exhausted(self) -> bool:
        return self.max_attempts is not None and self.attempt >= self.max_attempts

    def next_delay(self) -> float:
        delay = min(self._base, self.maximum)
        self.attempt += 1
        self._base = min(self._base * self.factor, self.maximum)
        if self.jitter:
            delay *= 1 + self.jitter * (2 * self._rand() - 1)
        return max(0.0, min(delay, self.maximum))

    def reset(self):
        self.attempt = 0
        self._base = self.initial


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Thread-safe circuit breaker for the subscription channel.

    Args:
        name: Human-readable name for logging.
        failure_threshold: Number of consecutive failures before opening.
        cooldown_seconds: Seconds to wait in OPEN before transitioning to HALF_OPEN.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, name: str) -> "CircuitBreaker":
        return cls(
            name,
            failure_threshold=settings.CIRCUIT_FAILURE_THRESHOLD,
            cooldown_seconds=settings.CIRCUIT_COOLDOWN_SECONDS,
        )

    def _check_half_open_transition_locked(self) -> None:
        """Must be called while self._lock is held."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            elapsed = self._clock() - self._last_failure_time
            if elapsed >= self.cooldown_seconds:
                self._state = CircuitState.HALF_OPEN
                logger.info(f"CircuitBreaker[{self.name}]: OPEN -> HALF_OPEN (cooldown {self.cooldown_seconds}s elapsed)")

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._check_half_open_transition_locked()
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def allow_request(self) -> bool:
        return self.state != CircuitState.OPEN

    def record_success(self) -> None:
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info(f"CircuitBreaker[{self.name}]: {self._state.value} -> closed (success)")
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning(f"CircuitBreaker[{self.name}]: HALF_OPEN -> OPEN (trial attempt failed)")
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning(
                    f"CircuitBreaker[{self.name}]: CLOSED -> OPEN ({self._failure_count} consecutive failures)"
                )

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None

    def get_status(self) -> dict:
        with self._lock:
            self._check_half_open_transition_locked()
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self.failure_threshold,
                "cooldown_seconds": self.cooldown_seconds,
            }
