"""Per-provider circuit breaker for company search providers.

Stops calling a provider after FAILURE_THRESHOLD consecutive failures. Once
OPEN_DURATION_MS has passed since the last failure the circuit becomes
half-open and lets a single trial call through; the trial call's outcome either
closes the circuit again or re-opens it with a fresh cooldown.

The breaker is a gate only. It never retries, and every kind of provider
error (timeout, HTTP status, malformed payload) counts the same.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

FAILURE_THRESHOLD = 3
OPEN_DURATION_MS = 60_000


class CircuitStatus(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failing, calls blocked
    HALF_OPEN = "half_open"  # Cooldown elapsed, one trial call allowed


@dataclass(frozen=True)
class CircuitState:
    """Failure bookkeeping for a single provider.

    Invariant: status is OPEN only when consecutive_failures has reached the
    breaker's failure threshold.
    """
    status: CircuitStatus = CircuitStatus.CLOSED
    consecutive_failures: int = 0
    last_failure_at: float | None = None
    last_success_at: float | None = None
    trial_started_at: float | None = None


def evaluate_state(
    state: CircuitState,
    now: float,
    open_duration_ms: int = OPEN_DURATION_MS,
) -> tuple[CircuitState, bool]:
    """Decide whether a call may go through at time ``now``.

    Pure function: the caller stores the returned state.

    Args:
        state: Current state of the provider's circuit.
        now: Current time in seconds (same clock as the stored timestamps).
        open_duration_ms: Cooldown before an open circuit admits a trial call.

    Returns:
        Tuple of (next state, whether the call is allowed).
    """
    cooldown = open_duration_ms / 1000

    if state.status is CircuitStatus.CLOSED:
        return state, True

    if state.status is CircuitStatus.OPEN:
        if state.last_failure_at is not None and now - state.last_failure_at >= cooldown:
            return replace(state, status=CircuitStatus.HALF_OPEN, trial_started_at=now), True
        return state, False

    # Half-open: one trial call at a time. One that never reports back
    # frees the slot after another cooldown.
    if state.trial_started_at is None or now - state.trial_started_at >= cooldown:
        return replace(state, trial_started_at=now), True
    return state, False


class CircuitBreaker:
    """Process-wide circuit state for every provider, keyed by provider name.

    Construct one per application and inject it into the search service;
    tests build their own instance with a fake clock.

    Example usage:
        breaker = CircuitBreaker()
        if not breaker.is_open("exa"):
            try:
                results = await exa.search(query)
                breaker.record_success("exa")
            except Exception:
                breaker.record_failure("exa")
    """

    def __init__(
        self,
        failure_threshold: int = FAILURE_THRESHOLD,
        open_duration_ms: int = OPEN_DURATION_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if open_duration_ms < 0:
            raise ValueError("open_duration_ms cannot be negative")

        self.failure_threshold = failure_threshold
        self.open_duration_ms = open_duration_ms
        self._clock = clock
        self._circuits: dict[str, CircuitState] = {}
        self._lock = threading.Lock()

    def is_open(self, provider: str) -> bool:
        """Check whether calls to ``provider`` are currently blocked.

        Evaluates the time-based open -> half-open transition once and stores
        the result, so call this exactly once per provider per request.
        """
        with self._lock:
            state = self._circuits.get(provider)
            if state is None:
                return False

            next_state, allowed = evaluate_state(state, self._clock(), self.open_duration_ms)
            if next_state is not state:
                self._circuits[provider] = next_state
                if state.status is CircuitStatus.OPEN:
                    logger.info(f"Circuit breaker {provider} entering HALF_OPEN state")
            return not allowed

    def record_success(self, provider: str) -> None:
        """Reset the provider's circuit to closed."""
        with self._lock:
            previous = self._circuits.get(provider)
            self._circuits[provider] = CircuitState(
                status=CircuitStatus.CLOSED,
                consecutive_failures=0,
                last_failure_at=None,
                last_success_at=self._clock(),
            )
        if previous is not None and previous.status is not CircuitStatus.CLOSED:
            logger.info(f"Circuit breaker {provider} recovered, entering CLOSED state")

    def record_failure(self, provider: str) -> None:
        """Count a failed call; opens the circuit at the failure threshold."""
        with self._lock:
            state = self._circuits.get(provider) or CircuitState()
            failures = state.consecutive_failures + 1
            opened = failures >= self.failure_threshold
            self._circuits[provider] = replace(
                state,
                status=CircuitStatus.OPEN if opened else state.status,
                consecutive_failures=failures,
                last_failure_at=self._clock(),
                trial_started_at=None,
            )

        if opened:
            logger.error(f"Circuit breaker {provider} OPEN after {failures} failures")
        else:
            logger.warning(f"Circuit breaker {provider} failure {failures}/{self.failure_threshold}")

    def get_state(self, provider: str) -> CircuitState | None:
        """Get the stored state for a provider (None if never recorded)."""
        with self._lock:
            return self._circuits.get(provider)

    def reset(self, provider: str | None = None) -> None:
        """Forget one provider's state, or every provider's when None."""
        with self._lock:
            if provider is None:
                self._circuits.clear()
            else:
                self._circuits.pop(provider, None)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Serializable view of all circuits for status reporting."""
        with self._lock:
            circuits = dict(self._circuits)
        return {
            name: {
                "status": state.status.value,
                "consecutive_failures": state.consecutive_failures,
                "last_failure_at": state.last_failure_at,
                "last_success_at": state.last_success_at,
            }
            for name, state in circuits.items()
        }
