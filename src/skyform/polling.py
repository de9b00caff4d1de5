"""
Poll-until-converged: repeatedly runs a probe until it reports convergence,
reports a fatal condition, or the deadline passes.

The probe classifies each observation:

    Converged(value)          -> stop, return value
    RetryableNotYet(reason)   -> sleep per backoff, probe again if time remains
    FatalError(error)         -> stop, raise error without using remaining time

Retrying is delegated to tenacity; only RetryableNotYet is ever retried.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    wait_exponential,
    wait_random,
)

from .errors import ConvergenceTimeout
from .logger import logger


class PollState(str, Enum):
    POLLING = "POLLING"
    CONVERGED = "CONVERGED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Converged:
    value: Any = None


@dataclass(frozen=True)
class RetryableNotYet:
    reason: str
    state: str | None = None


@dataclass(frozen=True)
class FatalError:
    error: Exception


ProbeOutcome = Converged | RetryableNotYet | FatalError
Probe = Callable[[], ProbeOutcome]


class Deadline:
    """Absolute point on the monotonic clock."""

    def __init__(self, at: float):
        self.at = at

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.at


@dataclass(frozen=True)
class Backoff:
    """
    Wait between probes: interval * multiplier ** (attempt - 1), capped at
    max_interval, plus up to `jitter` random seconds.
    """

    interval: float = 2.0
    multiplier: float = 1.5
    max_interval: float = 10.0
    jitter: float = 0.0

    @classmethod
    def fixed(cls, interval: float) -> "Backoff":
        return cls(interval=interval, multiplier=1.0, max_interval=interval)

    def strategy(self) -> Any:
        wait = wait_exponential(
            multiplier=self.interval,
            exp_base=self.multiplier,
            min=0,
            max=self.max_interval,
        )
        if self.jitter:
            wait = wait + wait_random(0, self.jitter)
        return wait


DEFAULT_BACKOFF = Backoff()


@dataclass(frozen=True)
class PollResult:
    state: PollState
    value: Any
    attempts: int
    elapsed: float


class _StillPolling(Exception):
    def __init__(self, outcome: RetryableNotYet):
        super().__init__(outcome.reason)
        self.outcome = outcome


class Poller:
    """
    One polling run. `state` moves POLLING -> CONVERGED or POLLING -> FAILED
    and never changes afterwards.
    """

    def __init__(
        self,
        probe: Probe,
        deadline: Deadline,
        backoff: Backoff | None = None,
        entity: str = "resource",
        action: str = "poll",
        identity: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.probe = probe
        self.deadline = deadline
        self.backoff = backoff or DEFAULT_BACKOFF
        self.entity = entity
        self.action = action
        self.identity = identity
        self.sleep = sleep
        self.state = PollState.POLLING
        self.attempts = 0
        self.last: RetryableNotYet | None = None

    def _attempt(self) -> Any:
        self.attempts += 1
        outcome = self.probe()
        if isinstance(outcome, Converged):
            return outcome.value
        if isinstance(outcome, RetryableNotYet):
            self.last = outcome
            raise _StillPolling(outcome)
        if isinstance(outcome, FatalError):
            raise outcome.error
        raise TypeError(f"Probe returned {outcome!r}, expected a probe outcome")

    def _stop(self, retry_state: RetryCallState) -> bool:
        return self.deadline.expired()

    def _wait(self, retry_state: RetryCallState) -> float:
        # Never sleep past the deadline; the final probe lands on it
        return min(self.backoff.strategy()(retry_state), self.deadline.remaining())

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        reason = self.last.reason if self.last else "not yet converged"
        logger.debug(
            f"{self.entity} {self.identity!r} {self.action}: attempt "
            f"{retry_state.attempt_number} not converged ({reason}), "
            f"retrying in {retry_state.next_action.sleep:.1f}s"
        )

    def run(self) -> PollResult:
        started = time.monotonic()
        retrying = Retrying(
            stop=self._stop,
            wait=self._wait,
            retry=retry_if_exception_type(_StillPolling),
            before_sleep=self._before_sleep,
            sleep=self.sleep,
        )
        try:
            value = retrying(self._attempt)
        except RetryError as e:
            self.state = PollState.FAILED
            raise ConvergenceTimeout(
                self.entity,
                self.action,
                identity=self.identity,
                last_state=self.last.state if self.last else None,
                last_reason=self.last.reason if self.last else None,
            ) from e
        except Exception:
            self.state = PollState.FAILED
            raise

        self.state = PollState.CONVERGED
        return PollResult(
            state=self.state,
            value=value,
            attempts=self.attempts,
            elapsed=time.monotonic() - started,
        )


def poll_until_converged(
    probe: Probe,
    deadline: Deadline,
    backoff: Backoff | None = None,
    **context: Any,
) -> PollResult:
    """Runs `probe` until convergence. See Poller for the keyword context."""
    return Poller(probe, deadline, backoff, **context).run()
