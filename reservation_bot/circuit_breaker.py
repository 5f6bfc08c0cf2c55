"""
Circuit breaker for calls into external collaborators.

The knowledge base and the LLM recognizer live on the other side of a
network hop. When either is down we stop calling it for a while and let
the turn degrade to the next fallback tier instead of stalling every turn.
"""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitBreakerOpenError(RuntimeError):
    """Raised when the breaker refuses to call a collaborator."""


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Calls pass through
    OPEN = "open"  # Calls are refused
    HALF_OPEN = "half_open"  # One trial call allowed


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Transitions:
    - CLOSED -> OPEN: after failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: once timeout seconds passed since the last failure
    - HALF_OPEN -> CLOSED: trial call succeeded
    - HALF_OPEN -> OPEN: trial call failed
    """

    def __init__(self, failure_threshold: int = 5, timeout: int = 60, name: str = "CircuitBreaker"):
        """
        Args:
            failure_threshold: Consecutive failures before opening
            timeout: Seconds to stay open before allowing a trial call
            name: Collaborator name used in logs
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name

        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time: float | None = None
        self._lock = threading.Lock()

        logger.info(
            f"CircuitBreaker '{name}' ready: threshold={failure_threshold}, timeout={timeout}s"
        )

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Run ``func`` unless the breaker is open.

        State changes happen under the breaker's lock; ``func`` runs outside it.

        Raises:
            CircuitBreakerOpenError: If the breaker is open
            Exception: Whatever ``func`` raised (after being counted)
        """
        with self._lock:
            if self.state == CircuitState.OPEN:
                if not self._timeout_elapsed():
                    raise CircuitBreakerOpenError(f"CircuitBreaker '{self.name}' is OPEN")
                logger.info(f"CircuitBreaker '{self.name}': OPEN -> HALF_OPEN")
                self.state = CircuitState.HALF_OPEN

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            with self._lock:
                self._record_failure()
                count = self.failure_count
            logger.error(
                f"CircuitBreaker '{self.name}' failure ({count}/{self.failure_threshold}): {e}"
            )
            raise

        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.info(f"CircuitBreaker '{self.name}': HALF_OPEN -> CLOSED")
            self._close()
        return result

    def _record_failure(self):
        """Caller holds _lock."""
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                logger.warning(f"CircuitBreaker '{self.name}': {self.state.name} -> OPEN")
            self.state = CircuitState.OPEN

    def _timeout_elapsed(self) -> bool:
        if self.last_failure_time is None:
            return True
        return time.time() - self.last_failure_time >= self.timeout

    def _close(self):
        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time = None

    def reset(self):
        """Close the breaker and forget past failures."""
        with self._lock:
            self._close()

    def get_state(self) -> dict:
        """Snapshot for /health and /metrics."""
        with self._lock:
            return {
                "name": self.name,
                "state": self.state.value,
                "failure_count": self.failure_count,
                "failure_threshold": self.failure_threshold,
                "last_failure_time": self.last_failure_time,
            }
