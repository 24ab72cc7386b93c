#!/usr/bin/env python3
"""
In-memory state for a single workflow run.

Nothing here is persisted: a WorkflowState lives exactly as long as the
Workflow.run() call that created it.

Usage:
    from stepflow.core.state import WorkflowState

    state = WorkflowState()
    state.set_result("fetch", {"id": 1})
    state.mark_completed("fetch")
    state.get_result("fetch")
"""

import threading
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import (
    UNKNOWN_STEP,
    NoActiveWorkflowError,
    StepAbandonedError,
    WorkflowCancelledError,
)
from .logger import WorkflowLogger


class WorkflowState:
    """
    Completed steps, cached results and attempt counters of one run.

    Owned by a single run and mutated from a single thread of control,
    so it carries no lock.
    """

    def __init__(self):
        self._completed: List[str] = []
        self._results: Dict[str, Any] = {}
        self._attempts: Dict[str, int] = {}

    @property
    def completed_steps(self) -> List[str]:
        """Completed step names in completion order."""
        return list(self._completed)

    def has_completed(self, step_name: str) -> bool:
        return step_name in self._completed

    def mark_completed(self, step_name: str) -> None:
        if step_name not in self._completed:
            self._completed.append(step_name)

    def get_result(self, step_name: str, default: Any = None) -> Any:
        """Return the cached result, or default when none is cached."""
        return self._results.get(step_name, default)

    def set_result(self, step_name: str, result: Any) -> None:
        """
        Cache a step result.

        None means "no result" and is not cached.
        """
        if result is None:
            self._results.pop(step_name, None)
            return
        self._results[step_name] = result

    def has_result(self, step_name: str) -> bool:
        return step_name in self._results

    def record_attempt(self, step_name: str) -> int:
        """Increment and return the attempt counter of a step."""
        self._attempts[step_name] = self._attempts.get(step_name, 0) + 1
        return self._attempts[step_name]

    def attempts(self, step_name: str) -> int:
        return self._attempts.get(step_name, 0)

    def all(self) -> dict:
        """Return a snapshot of the state."""
        return {
            "completed_steps": list(self._completed),
            "results": dict(self._results),
            "attempts": dict(self._attempts),
        }


@dataclass
class WorkflowContext:
    """The active run: identity, state, logger and cancellation."""

    workflow_id: str
    workflow_name: str
    state: WorkflowState = field(default_factory=WorkflowState)
    logger: Optional[WorkflowLogger] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    inputs: Any = None

    def __post_init__(self):
        if self.logger is None:
            self.logger = WorkflowLogger(self.workflow_name, run_id=self.workflow_id)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def sleep(self, seconds: float) -> None:
        """Suspend for `seconds`, raising if the run is cancelled meanwhile."""
        if self.cancel_event.wait(seconds):
            raise WorkflowCancelledError(self.workflow_name, self.workflow_id)


@dataclass
class StepContext:
    """The step currently executing and its retry attempt."""

    step_name: str
    attempt: int = 0

    def increment_attempt(self) -> int:
        self.attempt += 1
        return self.attempt


_current_workflow: ContextVar[Optional[WorkflowContext]] = ContextVar(
    "stepflow_workflow", default=None
)
_current_step: ContextVar[Optional[StepContext]] = ContextVar(
    "stepflow_step", default=None
)
# timeout workers push an event here; set once the caller stops waiting
_abandoned: ContextVar[Tuple[threading.Event, ...]] = ContextVar(
    "stepflow_abandoned", default=()
)


def current_workflow(required: bool = True) -> Optional[WorkflowContext]:
    """
    Return the active run context.

    Raises:
        NoActiveWorkflowError: no run is active and `required` is set
    """
    ctx = _current_workflow.get()
    if ctx is None and required:
        raise NoActiveWorkflowError()
    return ctx


def current_step() -> Optional[StepContext]:
    return _current_step.get()


def current_step_name() -> str:
    """Name of the executing step, or "unknown" outside a step."""
    step = _current_step.get()
    return step.step_name if step else UNKNOWN_STEP


def interruptible_sleep(seconds: float) -> None:
    """Sleep through the active run (cancellable) or plainly outside a run."""
    ctx = _current_workflow.get()
    if ctx is None:
        time.sleep(seconds)
    else:
        ctx.sleep(seconds)


def ensure_not_abandoned(step_name: Optional[str] = None) -> None:
    """
    Refuse to go on inside a timed-out operation.

    Raises:
        StepAbandonedError: an enclosing timeout() already gave up on us
    """
    if any(event.is_set() for event in _abandoned.get()):
        raise StepAbandonedError(step_name or current_step_name())
