import threading

import pytest

from stepflow.core.errors import NoActiveWorkflowError, StepAbandonedError, WorkflowCancelledError
from stepflow.core.state import (
    WorkflowContext,
    WorkflowState,
    _abandoned,
    current_step_name,
    current_workflow,
    ensure_not_abandoned,
)


class TestWorkflowState:

    def test_starts_empty(self):
        state = WorkflowState()
        assert state.completed_steps == []
        assert state.all() == {"completed_steps": [], "results": {}, "attempts": {}}

    def test_completion_order(self):
        state = WorkflowState()
        for name in ["b", "a", "c", "a"]:
            state.mark_completed(name)
        assert state.completed_steps == ["b", "a", "c"]

    def test_results(self):
        state = WorkflowState()
        state.set_result("fetch", {"id": 1})
        assert state.has_result("fetch")
        assert state.get_result("fetch") == {"id": 1}
        assert state.get_result("missing", "fallback") == "fallback"

    def test_none_is_not_cached(self):
        state = WorkflowState()
        state.set_result("notify", None)
        assert not state.has_result("notify")

    def test_falsy_values_are_cached(self):
        state = WorkflowState()
        state.set_result("count", 0)
        assert state.has_result("count")

    def test_attempt_counter(self):
        state = WorkflowState()
        assert state.attempts("x") == 0
        assert state.record_attempt("x") == 1
        assert state.record_attempt("x") == 2

    def test_completed_steps_is_a_copy(self):
        state = WorkflowState()
        state.mark_completed("a")
        state.completed_steps.append("b")
        assert state.completed_steps == ["a"]


class TestWorkflowContext:

    def test_no_active_workflow(self):
        assert current_workflow(required=False) is None
        with pytest.raises(NoActiveWorkflowError):
            current_workflow()

    def test_step_name_outside_step(self):
        assert current_step_name() == "unknown"

    def test_sleep_raises_when_cancelled(self, quiet_settings):
        event = threading.Event()
        event.set()
        ctx = WorkflowContext("wf-1", "wf", cancel_event=event)
        with pytest.raises(WorkflowCancelledError):
            ctx.sleep(5)

    def test_sleep_waits_when_not_cancelled(self):
        ctx = WorkflowContext("wf-1", "wf")
        ctx.sleep(0)
        assert not ctx.cancelled


class TestAbandonment:

    def test_nothing_pushed(self):
        ensure_not_abandoned("x")

    def test_pending_event_is_fine(self):
        token = _abandoned.set((threading.Event(),))
        try:
            ensure_not_abandoned("x")
        finally:
            _abandoned.reset(token)

    def test_set_event_rejects(self):
        event = threading.Event()
        event.set()
        token = _abandoned.set((threading.Event(), event))
        try:
            with pytest.raises(StepAbandonedError) as exc_info:
                ensure_not_abandoned("late")
        finally:
            _abandoned.reset(token)
        assert exc_info.value.step_name == "late"
