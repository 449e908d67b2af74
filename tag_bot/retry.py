"""Retry remote operations with exponential backoff and rate-limit waits.

:func:`execute_with_retry` wraps a zero-argument callable. Retryable failures
(transport errors, transient HTTP statuses, known transient messages) are
retried up to :attr:`RetryConfig.max_attempts` times; everything else stops
after the first attempt. The executor never raises for a failed operation:
the outcome is always a :class:`RetryResult`.

Delays follow ``min(base_delay * backoff_multiplier ** (n - 1), max_delay)``
before attempt ``n + 1``, optionally jittered by up to 25% either way. When
GitHub reports an exhausted rate limit the header-driven wait replaces the
backoff delay for that cycle.
"""

from __future__ import annotations

import collections.abc as cabc
import contextlib
import dataclasses
import datetime as dt
import errno
import logging
import random
import re
import time
import typing as typ
from email.utils import parsedate_to_datetime

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from .errors import GitHubAPIError, ValidationError

__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "RETRYABLE_STATUS_CODES",
    "RetryConfig",
    "RetryResult",
    "compute_backoff_delay",
    "execute_with_retry",
    "is_retryable_error",
    "rate_limit_wait",
]

logger = logging.getLogger(__name__)


class _UniformGenerator(typ.Protocol):
    """Protocol describing RNG objects that provide ``uniform``."""

    def uniform(self, a: float, b: float) -> float:
        """Return a random floating point number N such that ``a <= N <= b``."""


_JITTER = random.SystemRandom()
_JITTER_FACTOR = 0.25
_MIN_JITTERED_DELAY = 0.1

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

_NETWORK_ERROR_CODES = frozenset(
    {
        "ECONNRESET",
        "ECONNREFUSED",
        "ECONNABORTED",
        "ETIMEDOUT",
        "ENOTFOUND",
        "EAI_AGAIN",
        "EPIPE",
        "EHOSTUNREACH",
        "ENETUNREACH",
    }
)
_NETWORK_ERRNOS = frozenset(
    {
        errno.ECONNRESET,
        errno.ECONNREFUSED,
        errno.ECONNABORTED,
        errno.ETIMEDOUT,
        errno.EPIPE,
        errno.EHOSTUNREACH,
        errno.ENETUNREACH,
    }
)
_TRANSIENT_MESSAGE = re.compile(
    r"rate limit|timed? ?out|timeout|connection reset|socket hang up"
    r"|service unavailable|bad gateway",
    re.IGNORECASE,
)


@dataclasses.dataclass(frozen=True, slots=True)
class RetryConfig:
    """Per-call retry policy. Delays are in seconds.

    Attributes
    ----------
    max_attempts
        Total number of attempts, including the first one.
    base_delay
        Delay before the second attempt.
    max_delay
        Upper bound on the exponential backoff delay.
    backoff_multiplier
        Growth factor between consecutive delays; at least 1.
    jitter
        Perturb each backoff delay by up to 25% either way.
    max_rate_limit_wait
        Upper bound on a wait derived from rate-limit headers.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True
    max_rate_limit_wait: float = 900.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be a positive integer, got {self.max_attempts}"
            raise ValidationError(msg)
        if self.base_delay < 0 or self.max_delay < 0:
            msg = "Retry delays must not be negative"
            raise ValidationError(msg)
        if self.backoff_multiplier < 1:
            msg = (
                "backoff_multiplier must be at least 1, "
                f"got {self.backoff_multiplier}"
            )
            raise ValidationError(msg)


DEFAULT_RETRY_CONFIG = RetryConfig()


@dataclasses.dataclass(frozen=True)
class RetryResult[T]:
    """Outcome of :func:`execute_with_retry`.

    ``data`` is set when ``success`` is true, ``error`` otherwise.
    ``total_time`` is measured in seconds.
    """

    success: bool
    attempts: int
    total_time: float
    data: T | None = None
    error: Exception | None = None


def _error_status(error: BaseException) -> int | None:
    if isinstance(error, GitHubAPIError):
        return error.status
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def _error_headers(error: BaseException) -> cabc.Mapping[str, str]:
    if isinstance(error, GitHubAPIError):
        return error.headers
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.headers
    return {}


def _parse_retry_after(value: str | None, *, now: float) -> float | None:
    """Return a ``Retry-After`` delay in seconds when one can be parsed."""
    if value is None:
        return None
    retry_after = value.strip()
    if not retry_after:
        return None
    if retry_after.isdigit():
        return float(int(retry_after, base=10))
    with contextlib.suppress(TypeError, ValueError, OverflowError):
        parsed = parsedate_to_datetime(retry_after)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=dt.UTC)
        return max(parsed.timestamp() - now, 0.0)
    return None


def rate_limit_wait(
    error: BaseException, *, now: float | None = None
) -> float | None:
    """Return the wait GitHub asked for, or ``None`` when there is no hint.

    A ``retry-after`` header counts on 403 and 429 responses. Otherwise an
    ``x-ratelimit-remaining`` of ``0`` together with an ``x-ratelimit-reset``
    epoch yields the time left until the window resets.
    """
    status = _error_status(error)
    if status is None:
        return None
    headers = _error_headers(error)
    current = time.time() if now is None else now

    if status in {403, 429}:
        retry_after = _parse_retry_after(headers.get("retry-after"), now=current)
        if retry_after is not None:
            return retry_after

    if headers.get("x-ratelimit-remaining") == "0":
        with contextlib.suppress(TypeError, ValueError):
            reset = float(headers.get("x-ratelimit-reset", ""))
            return max(reset - current, 0.0)
    return None


def _has_network_code(error: BaseException) -> bool:
    code = getattr(error, "code", None)
    if isinstance(code, str) and code.upper() in _NETWORK_ERROR_CODES:
        return True
    return isinstance(error, OSError) and error.errno in _NETWORK_ERRNOS


def is_retryable_error(error: BaseException) -> bool:
    """Return True when ``error`` looks transient and is worth retrying."""
    if isinstance(error, ValidationError):
        return False
    if isinstance(error, httpx.TransportError) or _has_network_code(error):
        return True
    status = _error_status(error)
    if status in RETRYABLE_STATUS_CODES:
        return True
    if status is not None and rate_limit_wait(error) is not None:
        return True
    return bool(_TRANSIENT_MESSAGE.search(str(error)))


def compute_backoff_delay(
    attempt: int,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    rng: _UniformGenerator | None = None,
) -> float:
    """Return the delay that follows failed attempt number ``attempt``."""
    exponent = max(attempt - 1, 0)
    delay = min(
        config.base_delay * (config.backoff_multiplier**exponent), config.max_delay
    )
    if not config.jitter:
        return delay
    generator = _JITTER if rng is None else rng
    jittered = delay * (1 + generator.uniform(-_JITTER_FACTOR, _JITTER_FACTOR))
    return max(jittered, _MIN_JITTERED_DELAY)


class _TagBotRetryWait(wait_base):
    """Wait strategy combining exponential backoff with rate-limit hints."""

    def __init__(
        self, config: RetryConfig, *, rng: _UniformGenerator | None = None
    ) -> None:
        super().__init__()
        self._config = config
        self._rng = rng
        self._backoff_cycles = 0

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            exception = outcome.exception()
            if exception is not None:
                hinted = rate_limit_wait(exception)
                if hinted is not None:
                    logger.info("Rate limited by GitHub; waiting %.1fs", hinted)
                    return min(hinted, self._config.max_rate_limit_wait)
        # Header-driven waits leave the backoff exponent where it was.
        self._backoff_cycles += 1
        return compute_backoff_delay(self._backoff_cycles, self._config, self._rng)


def _log_before_sleep(
    description: str, config: RetryConfig
) -> cabc.Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "%s failed (attempt %d/%d): %s; retrying in %.2fs",
            description,
            retry_state.attempt_number,
            config.max_attempts,
            error,
            delay,
        )

    return _log


def execute_with_retry[T](
    operation: cabc.Callable[[], T],
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    *,
    description: str = "GitHub API request",
    sleep: cabc.Callable[[float], None] = time.sleep,
    rng: _UniformGenerator | None = None,
) -> RetryResult[T]:
    """Run ``operation`` under ``config`` and report the outcome.

    Parameters
    ----------
    operation
        Zero-argument callable performing one remote call.
    config
        Retry policy for this call.
    description
        Label used in log messages.
    sleep
        Function used to wait between attempts.
    rng
        Source of jitter; defaults to :class:`random.SystemRandom`.

    Returns
    -------
    RetryResult
        ``success`` with ``data`` when an attempt succeeded, otherwise the
        last ``error``. ``attempts`` counts every call made.
    """
    attempts = 0

    def _attempt() -> T:
        nonlocal attempts
        attempts += 1
        return operation()

    retrying = Retrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=_TagBotRetryWait(config, rng=rng),
        retry=retry_if_exception(is_retryable_error),
        sleep=sleep,
        before_sleep=_log_before_sleep(description, config),
        reraise=True,
    )
    started = time.monotonic()
    try:
        data = retrying(_attempt)
    except Exception as exc:  # noqa: BLE001 - failures are reported in the result
        elapsed = time.monotonic() - started
        logger.debug("%s gave up after %d attempt(s): %s", description, attempts, exc)
        return RetryResult(
            success=False, attempts=attempts, total_time=elapsed, error=exc
        )
    return RetryResult(
        success=True,
        attempts=attempts,
        total_time=time.monotonic() - started,
        data=data,
    )
