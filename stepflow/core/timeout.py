#!/usr/bin/env python3
"""
Per-attempt deadlines for operations.

Usage:
    from stepflow.core.timeout import timeout

    charge = timeout("10 seconds")(lambda: payments.charge(order))
    charge()  # raises StepTimeoutError after 10s

The operation runs on a daemon worker thread. When the deadline passes
first the caller is released and the worker is abandoned: it may still
finish in the background, so operations must be safe to abandon. An
abandoned worker can no longer touch the run. Any step() or retry
attempt it starts afterwards raises StepAbandonedError, and a step it
finishes afterwards is neither cached nor marked completed.
"""

import contextvars
import functools
import threading
from typing import Any, Callable

from .durations import DurationInput, to_seconds
from .errors import StepTimeoutError
from .state import _abandoned, current_step_name

Operation = Callable[[], Any]


def run_with_timeout(operation: Operation, seconds: float) -> Any:
    """
    Run operation, waiting at most `seconds` for it to finish.

    Raises:
        StepTimeoutError: the deadline passed first
        Exception: whatever the operation raised, unchanged
    """
    step_name = current_step_name()
    outcome = {}
    abandoned = threading.Event()

    def target():
        _abandoned.set(_abandoned.get() + (abandoned,))
        try:
            outcome["value"] = operation()
        except BaseException as e:
            outcome["error"] = e

    context = contextvars.copy_context()
    worker = threading.Thread(
        target=context.run,
        args=(target,),
        name=f"stepflow-timeout-{step_name}",
        daemon=True,
    )
    worker.start()
    worker.join(seconds)

    if worker.is_alive():
        abandoned.set()
        raise StepTimeoutError(step_name, seconds)
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("value")


def timeout(duration: DurationInput) -> Callable[[Operation], Operation]:
    """
    Build a combinator that races an operation against a deadline.

    Compose inside retry() to give every attempt a fresh deadline:

        retry(max_attempts=3)(timeout("2 seconds")(op))
    """
    seconds = to_seconds(duration)

    def combinator(operation: Operation) -> Operation:
        @functools.wraps(operation)
        def wrapped() -> Any:
            return run_with_timeout(operation, seconds)
        return wrapped

    return combinator
