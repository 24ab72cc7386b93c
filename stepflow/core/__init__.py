"""
Core execution primitives for step workflows.

Modules:
- backoff: Backoff policies and jitter
- durations: Duration parsing
- errors: Error taxonomy
- logger: Structured logging for workflows
- retry: Retry combinator with backoff
- timeout: Per-attempt deadlines
- state: In-memory run state
- runner: Workflow execution engine
"""

from .backoff import (
    Backoff,
    BackoffConfig,
    ConstantBackoff,
    ExponentialBackoff,
    JitterConfig,
    LinearBackoff,
    calculate_delay,
    is_backoff_config,
)
from .config import Settings
from .errors import (
    NoActiveWorkflowError,
    RetryExhaustedError,
    StepAbandonedError,
    StepError,
    StepTimeoutError,
    WorkflowCancelledError,
    WorkflowError,
)
from .logger import StepEvent, WorkflowLogger
from .retry import RetryOptions, RetryPolicy, retry, retry_with_backoff
from .runner import Workflow, run_workflow, sleep, step
from .state import StepContext, WorkflowContext, WorkflowState
from .timeout import timeout

__all__ = [
    "Backoff",
    "BackoffConfig",
    "ConstantBackoff",
    "ExponentialBackoff",
    "JitterConfig",
    "LinearBackoff",
    "calculate_delay",
    "is_backoff_config",
    "Settings",
    "NoActiveWorkflowError",
    "RetryExhaustedError",
    "StepAbandonedError",
    "StepError",
    "StepTimeoutError",
    "WorkflowCancelledError",
    "WorkflowError",
    "StepEvent",
    "WorkflowLogger",
    "RetryOptions",
    "RetryPolicy",
    "retry",
    "retry_with_backoff",
    "Workflow",
    "run_workflow",
    "sleep",
    "step",
    "StepContext",
    "WorkflowContext",
    "WorkflowState",
    "timeout",
]
