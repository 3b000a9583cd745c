"""
Retry Policies

A retrier decides, per failed attempt, whether a request should be tried
again and how long to wait first. Backoff strategies compute the waits.

Attempts are numbered from 1: the first failed attempt is reported as
attempt 1, the second as attempt 2 and so on.
"""

import random
import threading
from typing import Any, NamedTuple, Optional, Tuple

from elasticsearch_cluster_lib.exceptions import ConfigurationError


class RetryDecision(NamedTuple):
    """
    Outcome of a retry consultation.

    Attributes:
        wait: Seconds to sleep before the next attempt
        retry: Whether to try again
        error: Fatal error; when set the request is aborted with it
    """
    wait: float = 0.0
    retry: bool = False
    error: Optional[BaseException] = None


class Retrier:
    """Interface for retry policies."""

    def decide(
        self,
        attempt: int,
        request: Any,
        response: Any,
        error: Optional[BaseException],
    ) -> RetryDecision:
        """
        Decide whether to retry.

        Args:
            attempt: Number of the failed attempt (1-based)
            request: The failed httpx.Request, or None if no node was available
            response: The httpx.Response, if the node answered
            error: The error that caused the failure, if any

        Returns:
            RetryDecision
        """
        raise NotImplementedError


class StopRetrier(Retrier):
    """Never retries. This is the default policy."""

    def decide(self, attempt, request, response, error) -> RetryDecision:
        return RetryDecision(0.0, False, None)


class BackoffRetrier(Retrier):
    """Retries as long as its backoff strategy allows."""

    def __init__(self, backoff: "Backoff"):
        self.backoff = backoff

    def decide(self, attempt, request, response, error) -> RetryDecision:
        wait, ok = self.backoff.next(attempt)
        return RetryDecision(wait, ok, None)


# -- Backoff strategies --


class Backoff:
    """Interface for backoff strategies."""

    def next(self, retry: int) -> Tuple[float, bool]:
        """
        Compute the wait before the given retry.

        Returns:
            (seconds to wait, whether to retry at all)
        """
        raise NotImplementedError


class ZeroBackoff(Backoff):
    """Retries forever without waiting."""

    def next(self, retry: int) -> Tuple[float, bool]:
        return 0.0, True


class StopBackoff(Backoff):
    """Never retries."""

    def next(self, retry: int) -> Tuple[float, bool]:
        return 0.0, False


class ConstantBackoff(Backoff):
    """Retries forever, always waiting the same interval (in seconds)."""

    def __init__(self, interval: float):
        if interval < 0:
            raise ConfigurationError(f"backoff interval must be non-negative, got {interval}")
        self.interval = interval

    def next(self, retry: int) -> Tuple[float, bool]:
        return self.interval, True


class SimpleBackoff(Backoff):
    """
    Waits a fixed list of ticks (in milliseconds), one per retry.

    Once every tick has been used the strategy stops. With jitter enabled
    each tick is spread over [tick/2, tick*3/2).
    """

    def __init__(self, *ticks: int, jitter: bool = False):
        if any(t < 0 for t in ticks):
            raise ConfigurationError("backoff ticks must be non-negative")
        self.ticks = list(ticks)
        self.jitter = jitter
        self._lock = threading.Lock()
        self._random = random.Random()

    def next(self, retry: int) -> Tuple[float, bool]:
        index = retry - 1
        if index < 0 or index >= len(self.ticks):
            return 0.0, False

        millis = self.ticks[index]
        if self.jitter:
            with self._lock:
                millis = _jitter(self._random, millis)
        return millis / 1000.0, True


class ExponentialBackoff(Backoff):
    """
    Exponential backoff with jitter.

    The wait for retry n is ``r * initial * 2**n`` milliseconds where r is
    drawn from [1, 2). The strategy stops once the wait reaches ``maximum``.
    """

    def __init__(self, initial: int, maximum: int):
        if initial <= 0 or maximum <= 0:
            raise ConfigurationError("exponential backoff bounds must be positive")
        if maximum < initial:
            raise ConfigurationError(
                f"maximum ({maximum}) must be >= initial ({initial})"
            )
        self.initial = float(initial)
        self.maximum = float(maximum)
        self.factor = 2.0
        self._lock = threading.Lock()
        self._random = random.Random()

    def next(self, retry: int) -> Tuple[float, bool]:
        with self._lock:
            r = 1.0 + self._random.random()
        millis = min(r * self.initial * (self.factor ** retry), self.maximum)
        if millis >= self.maximum:
            return 0.0, False
        return millis / 1000.0, True


def _jitter(rnd: random.Random, millis: int) -> int:
    if millis <= 0:
        return 0
    return millis // 2 + rnd.randrange(millis)


def retrier_for_max_retries(max_retries: int) -> Retrier:
    """
    Build a retrier from a plain retry count.

    Zero disables retries; n > 0 retries n times, waiting 100ms each time.
    """
    if max_retries < 0:
        raise ConfigurationError("max_retries must be greater than or equal to 0")
    if max_retries == 0:
        return StopRetrier()
    return BackoffRetrier(SimpleBackoff(*([100] * max_retries)))
