#!/usr/bin/env python3
"""
Workflow execution engine.

A workflow is a plain function of its input that issues named steps.
Each Workflow.run() call gets its own WorkflowState, so step results are
memoized within a run and never shared between runs.

Usage:
    from stepflow.core.runner import Workflow, step, retry, timeout, sleep

    def process_order(order_id):
        order = step("Fetch order", lambda: {"id": order_id, "amount": 100})
        step("Charge", retry(max_attempts=3)(timeout("10 seconds")(lambda: charge(order))))
        sleep("1 second")
        return order

    workflow = Workflow.make("process_order", process_order)
    result = workflow.run("order-123")
"""

import threading
import time
import uuid
from typing import Any, Callable, Iterable, Optional

from .config import Settings
from .durations import DurationInput, to_seconds
from .errors import StepError, WorkflowError
from .logger import Sink, StepEvent, WorkflowLogger
from .retry import retry
from .state import (
    StepContext,
    WorkflowContext,
    WorkflowState,
    _current_step,
    _current_workflow,
    current_workflow,
    ensure_not_abandoned,
)
from .timeout import timeout

Definition = Callable[[Any], Any]


def execute_step(ctx: WorkflowContext, name: str, operation: Callable[[], Any]) -> Any:
    """
    Run a named step against the run's state.

    A completed step with a cached result is returned from the cache.
    A completed step without a cached result (it returned None) is run
    again, so steps returning None must be safe to re-run.

    Raises:
        StepError: the operation raised a non-stepflow exception
        StepAbandonedError: called from an operation whose timeout already fired
        WorkflowError: stepflow errors (retry exhaustion, timeouts) unchanged
    """
    if not callable(operation):
        raise TypeError(f"Step '{name}' operation must be callable, got {type(operation).__name__}")

    state = ctx.state
    logger = ctx.logger

    ensure_not_abandoned(name)
    if state.has_completed(name) and state.has_result(name):
        logger.step_event(StepEvent.CACHE_HIT, name, attempt=state.attempts(name))
        return state.get_result(name)

    attempt = state.record_attempt(name)
    logger.step_event(StepEvent.START, name, attempt=attempt)

    token = _current_step.set(StepContext(name))
    try:
        result = operation()
    except WorkflowError as e:
        logger.step_event(StepEvent.FAILURE, name, attempt=attempt, data={"error": e.to_dict()})
        raise
    except Exception as e:
        error = StepError(name, e, attempt)
        logger.step_event(StepEvent.FAILURE, name, attempt=attempt, data={"error": error.to_dict()})
        raise error from e
    finally:
        _current_step.reset(token)

    ensure_not_abandoned(name)
    state.set_result(name, result)
    state.mark_completed(name)
    logger.step_event(
        StepEvent.SUCCESS, name, attempt=attempt,
        data={"result_type": type(result).__name__},
    )
    return result


def step(name: str, operation: Callable[[], Any]) -> Any:
    """Run a memoized step inside the active Workflow.run()."""
    return execute_step(current_workflow(), name, operation)


def sleep(duration: DurationInput) -> None:
    """
    Suspend the workflow for `duration`.

    Inside a run the sleep is interrupted by the run's cancel event.
    """
    seconds = to_seconds(duration)
    ctx = current_workflow(required=False)
    if ctx is None:
        time.sleep(seconds)
        return
    ctx.logger.info(f"sleeping for {seconds * 1000:.0f}ms...", {"delay": seconds})
    ctx.sleep(seconds)


class Workflow:
    """A named workflow definition; each run() gets a fresh state."""

    step = staticmethod(step)
    retry = staticmethod(retry)
    timeout = staticmethod(timeout)
    sleep = staticmethod(sleep)

    def __init__(self, name: str, definition: Definition, settings: Optional[Settings] = None):
        """
        Args:
            name: Workflow name, used for logging and run ids
            definition: Callable taking the run input
            settings: Logging settings for runs (defaults to Settings())
        """
        if not callable(definition):
            raise TypeError("Workflow definition must be callable")
        self.name = name
        self.definition = definition
        self.settings = settings or Settings()

    @classmethod
    def make(cls, name: str, definition: Definition,
             settings: Optional[Settings] = None) -> "Workflow":
        return cls(name, definition, settings=settings)

    def _create_context(self, inputs: Any = None,
                        cancel_event: Optional[threading.Event] = None,
                        sinks: Iterable[Sink] = ()) -> WorkflowContext:
        """Create the context of a new run."""
        run_id = f"{self.name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
        logger = WorkflowLogger(self.name, run_id=run_id, settings=self.settings)
        for sink in sinks:
            logger.add_sink(sink)
        return WorkflowContext(
            workflow_id=run_id,
            workflow_name=self.name,
            state=WorkflowState(),
            logger=logger,
            cancel_event=cancel_event or threading.Event(),
            inputs=inputs,
        )

    def _execute(self, ctx: WorkflowContext) -> Any:
        logger = ctx.logger

        logger.info("Workflow started", {"run_id": ctx.workflow_id})
        token = _current_workflow.set(ctx)
        try:
            result = self.definition(ctx.inputs)
        except Exception as e:
            logger.critical("Workflow failed", {
                "error": e.to_dict() if isinstance(e, WorkflowError) else str(e),
                "completed_steps": ctx.state.completed_steps,
            })
            raise
        finally:
            _current_workflow.reset(token)

        logger.set_step("done")
        logger.info("Workflow completed", {"completed_steps": ctx.state.completed_steps})
        return result

    def run(self, inputs: Any = None, cancel_event: Optional[threading.Event] = None,
            sinks: Iterable[Sink] = ()) -> Any:
        """
        Execute the definition with a fresh state.

        Args:
            inputs: Passed to the definition
            cancel_event: Set it to interrupt sleeps and retry delays
            sinks: Callables receiving every step event of this run

        Returns:
            The definition's result; its exceptions propagate unchanged
        """
        return self._execute(self._create_context(inputs, cancel_event, sinks))

    def __repr__(self):
        return f"Workflow({self.name!r})"


def run_workflow(workflow: Workflow, inputs: Any = None,
                 cancel_event: Optional[threading.Event] = None,
                 sinks: Iterable[Sink] = ()) -> dict:
    """
    Execute a workflow and report the outcome instead of raising.

    Returns:
        dict with 'success', 'workflow', 'run_id', 'result' or 'error',
        'completed_steps' and 'logs'

    Example:
        report = run_workflow(order_workflow, "order-123")
        if report["success"]:
            print(report["result"])
    """
    ctx = workflow._create_context(inputs, cancel_event, sinks)
    report = {"workflow": workflow.name, "run_id": ctx.workflow_id}

    try:
        result = workflow._execute(ctx)
    except Exception as e:
        report.update({
            "success": False,
            "error": e.to_dict() if isinstance(e, WorkflowError) else {
                "type": type(e).__name__, "message": str(e),
            },
        })
    else:
        report.update({"success": True, "result": result})

    report["completed_steps"] = ctx.state.completed_steps
    report["logs"] = ctx.logger.get_logs()
    return report


__all__ = ["Workflow", "step", "sleep", "retry", "timeout", "execute_step", "run_workflow"]
