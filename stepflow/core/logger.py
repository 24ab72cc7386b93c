#!/usr/bin/env python3
"""
Structured logging for workflow runs.

Usage:
    from stepflow.core.logger import WorkflowLogger, StepEvent

    logger = WorkflowLogger("process_order")
    logger.info("Processing started", {"items": 10})
    logger.step_event(StepEvent.RETRY_SCHEDULED, "Validate order", attempt=1, delay=0.5)
"""

import json
import uuid
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .config import LEVELS, Settings


class StepEvent(str, Enum):
    """Step lifecycle events."""

    START = "step-start"
    CACHE_HIT = "step-cache-hit"
    SUCCESS = "step-success"
    FAILURE = "step-failure"
    RETRY_SCHEDULED = "retry-scheduled"


_EVENT_LEVELS = {
    StepEvent.START: "INFO",
    StepEvent.CACHE_HIT: "INFO",
    StepEvent.SUCCESS: "INFO",
    StepEvent.FAILURE: "ERROR",
    StepEvent.RETRY_SCHEDULED: "WARNING",
}

_EVENT_MESSAGES = {
    StepEvent.START: "executing...",
    StepEvent.CACHE_HIT: "cached",
    StepEvent.SUCCESS: "completed",
    StepEvent.FAILURE: "failed",
    StepEvent.RETRY_SCHEDULED: "retrying",
}

Sink = Callable[[dict], None]


class WorkflowLogger:
    """Structured logger for workflow execution with JSON output."""

    LEVELS = LEVELS

    def __init__(self, workflow: str, run_id: Optional[str] = None,
                 settings: Optional[Settings] = None, max_entries: Optional[int] = None):
        """
        Initialize logger for a workflow.

        Args:
            workflow: Name of the workflow
            run_id: Optional run ID (auto-generated if not provided)
            settings: Logging settings (defaults to Settings())
            max_entries: Keep at most this many entries in memory (None keeps
                all; process-wide loggers pass 0 and only echo)
        """
        self.workflow = workflow
        self.run_id = run_id or str(uuid.uuid4())[:8]
        self.settings = settings or Settings()
        self.step = "init"
        self._logs = deque(maxlen=max_entries)
        self._sinks: List[Sink] = []
        self._min_level = self.LEVELS.index(self.settings.log_level)
        self.log_file: Optional[Path] = None
        if self.settings.log_to_file:
            self._setup_log_file()

    def _setup_log_file(self):
        """Create log directory and file path."""
        log_dir = Path(self.settings.log_dir) / self.workflow
        log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = log_dir / f"{self.run_id}.json"

    def set_step(self, step: str):
        """Set the current step name for logging context."""
        self.step = step

    def add_sink(self, sink: Sink):
        """Register a callable receiving every step event dict."""
        self._sinks.append(sink)

    def _log(self, level: str, message: str, data: Optional[dict] = None) -> Optional[dict]:
        """Internal logging method."""
        if self.LEVELS.index(level) < self._min_level:
            return None

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "workflow": self.workflow,
            "run_id": self.run_id,
            "step": self.step,
            "level": level,
            "message": message,
            "data": data or {},
        }
        self._logs.append(entry)
        if self.log_file is not None:
            self._write_logs()

        if self.settings.console:
            print(f"[{level}] {self.workflow}/{self.step}: {message}")
        return entry

    def _write_logs(self):
        """Write logs to file."""
        with open(self.log_file, "w") as f:
            json.dump(list(self._logs), f, indent=2, default=str)

    def debug(self, message: str, data: Optional[dict] = None):
        """Log debug message."""
        self._log("DEBUG", message, data)

    def info(self, message: str, data: Optional[dict] = None):
        """Log info message."""
        self._log("INFO", message, data)

    def warning(self, message: str, data: Optional[dict] = None):
        """Log warning message."""
        self._log("WARNING", message, data)

    def error(self, message: str, data: Optional[dict] = None):
        """Log error message."""
        self._log("ERROR", message, data)

    def critical(self, message: str, data: Optional[dict] = None):
        """Log critical message."""
        self._log("CRITICAL", message, data)

    def step_event(
        self,
        event: StepEvent,
        step: str,
        attempt: Optional[int] = None,
        delay: Optional[float] = None,
        data: Optional[dict] = None,
    ) -> dict:
        """
        Record a step lifecycle event.

        Sinks always receive the event, regardless of the log level.

        Returns:
            The event dict {event, step, attempt, delay, ...data}
        """
        event = StepEvent(event)
        payload = {
            "event": event.value,
            "step": step,
            "attempt": attempt,
            "delay": delay,
        }
        if data:
            payload.update(data)

        message = _EVENT_MESSAGES[event]
        if event is StepEvent.RETRY_SCHEDULED and delay is not None:
            message = f"retrying in {delay * 1000:.0f}ms (attempt {attempt})"

        previous = self.step
        self.set_step(step)
        try:
            self._log(_EVENT_LEVELS[event], message, payload)
        finally:
            self.set_step(previous)

        for sink in self._sinks:
            sink(payload)
        return payload

    def get_logs(self) -> list:
        """Return all logs for this run."""
        return list(self._logs)

    def get_events(self) -> list:
        """Return the step events recorded for this run."""
        return [entry["data"] for entry in self._logs if "event" in entry["data"]]
