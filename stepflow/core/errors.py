#!/usr/bin/env python3
"""
Error types raised by the workflow executor.

Usage:
    from stepflow.core.errors import RetryExhaustedError

    try:
        workflow.run(order_id)
    except RetryExhaustedError as e:
        print(e.step_name, e.attempts, e.last_error)
"""

from typing import Any, Optional

UNKNOWN_STEP = "unknown"


class WorkflowError(Exception):
    """Base class for all stepflow errors."""

    def to_dict(self) -> dict:
        """Serialize error for logs and run reports."""
        return {"type": type(self).__name__, "message": str(self)}


class StepError(WorkflowError):
    """A step operation failed with a foreign exception."""

    def __init__(self, step_name: str, cause: BaseException, attempt: int = 0):
        self.step_name = step_name
        self.cause = cause
        self.attempt = attempt
        super().__init__(f"Step '{step_name}' failed on attempt {attempt}: {cause}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "step": self.step_name,
            "attempt": self.attempt,
            "cause": repr(self.cause),
        })
        return data


class StepTimeoutError(WorkflowError, TimeoutError):
    """A single attempt exceeded its deadline."""

    def __init__(self, step_name: str, timeout: float):
        self.step_name = step_name
        self.timeout = timeout
        super().__init__(f"Step '{step_name}' timed out after {timeout:g}s")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"step": self.step_name, "timeout": self.timeout})
        return data


class RetryExhaustedError(WorkflowError):
    """Retry attempts or the retry time budget were used up without success."""

    def __init__(self, step_name: str, attempts: int, last_error: Optional[BaseException]):
        self.step_name = step_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Step '{step_name}' gave up after {attempts} attempt(s): {last_error}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "step": self.step_name,
            "attempts": self.attempts,
            "last_error": repr(self.last_error),
        })
        return data


class NoActiveWorkflowError(WorkflowError):
    """step() was called outside of Workflow.run()."""

    def __init__(self, what: Any = "step"):
        super().__init__(f"{what}() must be called inside Workflow.run()")


class WorkflowCancelledError(WorkflowError):
    """The run was cancelled while suspended."""

    def __init__(self, workflow: str, run_id: str):
        self.workflow = workflow
        self.run_id = run_id
        super().__init__(f"Workflow '{workflow}' run {run_id} was cancelled")


class StepAbandonedError(WorkflowError):
    """An operation kept running after its timeout and tried to touch the run."""

    def __init__(self, step_name: str):
        self.step_name = step_name
        super().__init__(f"Step '{step_name}' was abandoned after its timeout")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["step"] = self.step_name
        return data
