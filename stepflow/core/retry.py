#!/usr/bin/env python3
"""
Retry policies with backoff.

Usage:
    from stepflow.core.retry import retry, RetryOptions
    from stepflow.core.backoff import Backoff

    call_api = retry(max_attempts=3, delay=Backoff.exponential(base="500 millis"))(
        lambda: client.get_json(url)
    )
    data = call_api()

    @retry_with_backoff(max_attempts=3, base_delay=2.0)
    def fetch_data(url):
        return requests.get(url)
"""

import dataclasses
import functools
import random as _random
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, Union

from .backoff import BackoffConfig, ExponentialBackoff, calculate_delay, is_backoff_config
from .durations import DurationInput, to_seconds
from .config import Settings
from .errors import (
    UNKNOWN_STEP,
    NoActiveWorkflowError,
    RetryExhaustedError,
    StepAbandonedError,
    WorkflowCancelledError,
)
from .logger import StepEvent, WorkflowLogger
from .state import current_step, current_workflow, ensure_not_abandoned, interruptible_sleep

DEFAULT_DELAY = 1.0

DelayInput = Union[DurationInput, Callable[[int], DurationInput], BackoffConfig, None]
Operation = Callable[[], Any]

# Control-flow errors that must never be retried
_NEVER_RETRIED = (NoActiveWorkflowError, StepAbandonedError, WorkflowCancelledError)

_default_logger = WorkflowLogger("stepflow", run_id="-", settings=Settings(), max_entries=0)


@dataclass(frozen=True)
class RetryOptions:
    """
    How to retry an operation.

    Args:
        max_attempts: Maximum number of attempts (including first try)
        delay: Fixed duration, callable of the zero-based retry index,
            or a backoff config. Defaults to 1 second.
        max_duration: Optional wall-clock budget for the whole retry loop
        exceptions: Exception types that are retried; others propagate
        on_retry: Optional callback(exception, attempt) before each delay
        random: Random source passed to backoff jitter
        sleep: Sleep primitive (defaults to the run's cancellable sleep)
        clock: Monotonic clock used for max_duration
    """

    max_attempts: int
    delay: DelayInput = None
    max_duration: Optional[DurationInput] = None
    exceptions: Tuple[Type[BaseException], ...] = (Exception,)
    on_retry: Optional[Callable[[BaseException, int], None]] = None
    random: Callable[[], float] = _random.random
    sleep: Optional[Callable[[float], None]] = None
    clock: Callable[[], float] = time.monotonic

    def __post_init__(self):
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise TypeError("max_attempts must be an int")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_duration is not None:
            to_seconds(self.max_duration)

    @property
    def max_duration_seconds(self) -> Optional[float]:
        return None if self.max_duration is None else to_seconds(self.max_duration)


def resolve_delay(delay: DelayInput, retry_index: int,
                  random: Callable[[], float] = _random.random) -> float:
    """
    Turn a delay option into seconds for the given zero-based retry.
    """
    if delay is None:
        return DEFAULT_DELAY
    if is_backoff_config(delay):
        return calculate_delay(delay, retry_index, random)
    if callable(delay):
        return to_seconds(delay(retry_index))
    return to_seconds(delay)


def run_with_retry(operation: Operation, options: RetryOptions) -> Any:
    """
    Call operation until it succeeds or the options are exhausted.

    Raises:
        RetryExhaustedError: chained to the last error
    """
    step = current_step()
    step_name = step.step_name if step else UNKNOWN_STEP
    ctx = current_workflow(required=False)
    logger = ctx.logger if ctx else _default_logger
    sleep = options.sleep or interruptible_sleep
    max_duration = options.max_duration_seconds

    attempt = 0
    last_error: Optional[BaseException] = None
    started = options.clock()

    while attempt < options.max_attempts:
        ensure_not_abandoned(step_name)
        try:
            return operation()
        except _NEVER_RETRIED:
            raise
        except options.exceptions as e:
            last_error = e

        attempt += 1
        if attempt >= options.max_attempts:
            break

        if max_duration is not None and options.clock() - started >= max_duration:
            break

        ensure_not_abandoned(step_name)
        delay = resolve_delay(options.delay, attempt - 1, options.random)

        logger.step_event(
            StepEvent.RETRY_SCHEDULED,
            step_name,
            attempt=attempt + 1,
            delay=delay,
            data={"max_attempts": options.max_attempts, "error": str(last_error)},
        )
        if options.on_retry:
            options.on_retry(last_error, attempt)
        if step:
            step.increment_attempt()

        sleep(delay)

    raise RetryExhaustedError(step_name, attempt, last_error) from last_error


def retry(options: Optional[RetryOptions] = None, **kwargs) -> Callable[[Operation], Operation]:
    """
    Build a combinator that wraps a zero-argument operation with retries.

    Either pass a RetryOptions or its fields as keyword arguments; keyword
    arguments given alongside options override its fields.

    Example:
        flaky = retry(max_attempts=5, delay="200 millis")(lambda: api.ping())
    """
    if options is None:
        options = RetryOptions(**kwargs)
    elif kwargs:
        options = dataclasses.replace(options, **kwargs)

    def combinator(operation: Operation) -> Operation:
        @functools.wraps(operation)
        def wrapped() -> Any:
            return run_with_retry(operation, options)
        return wrapped

    return combinator


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[Exception, int], None]] = None
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including first try)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential backoff (delay = base_delay * exponential_base^retry)
        exceptions: Tuple of exception types to catch and retry
        on_retry: Optional callback function(exception, attempt) called on each retry

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=2.0)
        def fetch_data():
            return requests.get("https://api.example.com/data")
    """
    options = RetryOptions(
        max_attempts=max_attempts,
        delay=ExponentialBackoff(base=base_delay, factor=exponential_base, max=max_delay),
        exceptions=exceptions,
        on_retry=on_retry,
    )

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return run_with_retry(lambda: func(*args, **kwargs), options)
        return wrapper
    return decorator


class RetryPolicy:
    """Configurable retry policy for use in workflows."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = False,
        max_duration: Optional[float] = None
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.max_duration = max_duration

    def to_options(self, **overrides) -> RetryOptions:
        """Build the equivalent RetryOptions."""
        options = RetryOptions(
            max_attempts=self.max_attempts,
            delay=ExponentialBackoff(
                base=self.base_delay,
                factor=self.exponential_base,
                max=self.max_delay,
                jitter=self.jitter,
            ),
            max_duration=self.max_duration,
        )
        return dataclasses.replace(options, **overrides) if overrides else options

    def wrap(self, operation: Operation) -> Operation:
        """Wrap a zero-argument operation with this policy."""
        return retry(self.to_options())(operation)

    def execute(self, func: Callable, *args, **kwargs) -> Any:
        """Execute a function with this retry policy."""
        return run_with_retry(lambda: func(*args, **kwargs), self.to_options())

    def to_dict(self) -> dict:
        """Serialize policy to dict."""
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "exponential_base": self.exponential_base,
            "jitter": self.jitter,
            "max_duration": self.max_duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RetryPolicy":
        """Create policy from dict."""
        return cls(**data)
