import json

import pytest

from stepflow.core.config import Settings
from stepflow.core.logger import StepEvent, WorkflowLogger


class TestWorkflowLogger:

    def test_entry_shape(self, quiet_settings):
        logger = WorkflowLogger("orders", run_id="abc", settings=quiet_settings)
        logger.info("Processing started", {"items": 10})

        entry = logger.get_logs()[0]
        assert entry["workflow"] == "orders"
        assert entry["run_id"] == "abc"
        assert entry["step"] == "init"
        assert entry["level"] == "INFO"
        assert entry["data"] == {"items": 10}
        assert entry["timestamp"].endswith("Z")

    def test_generated_run_id(self, quiet_settings):
        assert len(WorkflowLogger("orders", settings=quiet_settings).run_id) == 8

    def test_level_filter(self):
        logger = WorkflowLogger("orders", settings=Settings(console=False, log_level="WARNING"))
        logger.debug("hidden")
        logger.info("hidden")
        logger.warning("shown")
        logger.critical("shown")
        assert [e["level"] for e in logger.get_logs()] == ["WARNING", "CRITICAL"]

    def test_console_output(self, capsys):
        logger = WorkflowLogger("orders", settings=Settings())
        logger.set_step("fetch")
        logger.error("it broke")
        assert capsys.readouterr().out.strip() == "[ERROR] orders/fetch: it broke"

    def test_writes_json_file(self, tmp_path):
        settings = Settings(log_dir=str(tmp_path), log_to_file=True, console=False)
        logger = WorkflowLogger("orders", run_id="r1", settings=settings)
        logger.info("one")
        logger.info("two")

        path = tmp_path / "orders" / "r1.json"
        assert logger.log_file == path
        assert [e["message"] for e in json.loads(path.read_text())] == ["one", "two"]

    def test_no_file_by_default(self, quiet_settings):
        assert WorkflowLogger("orders", settings=quiet_settings).log_file is None


class TestStepEvents:

    def test_event_payload_and_sinks(self, quiet_settings):
        logger = WorkflowLogger("orders", settings=quiet_settings)
        received = []
        logger.add_sink(received.append)

        payload = logger.step_event(StepEvent.RETRY_SCHEDULED, "charge", attempt=2, delay=0.5)

        assert payload == {"event": "retry-scheduled", "step": "charge", "attempt": 2, "delay": 0.5}
        assert received == [payload]
        entry = logger.get_logs()[0]
        assert entry["step"] == "charge"
        assert entry["level"] == "WARNING"
        assert entry["message"] == "retrying in 500ms (attempt 2)"
        assert logger.step == "init"

    def test_sinks_receive_filtered_events(self):
        logger = WorkflowLogger("orders", settings=Settings(console=False, log_level="CRITICAL"))
        received = []
        logger.add_sink(received.append)
        logger.step_event("step-start", "fetch", attempt=1)

        assert received[0]["event"] == "step-start"
        assert logger.get_logs() == []

    def test_unknown_event(self, quiet_settings):
        with pytest.raises(ValueError):
            WorkflowLogger("orders", settings=quiet_settings).step_event("step-exploded", "x")


class TestBoundedBuffer:

    def test_keeps_most_recent_entries(self, quiet_settings):
        logger = WorkflowLogger("orders", settings=quiet_settings, max_entries=3)
        for n in range(10):
            logger.info(f"message {n}")
        assert [e["message"] for e in logger.get_logs()] == ["message 7", "message 8", "message 9"]

    def test_zero_keeps_nothing_but_still_echoes(self, capsys):
        logger = WorkflowLogger("HttpClient", settings=Settings(), max_entries=0)
        received = []
        logger.add_sink(received.append)

        logger.info("GET https://example.com")
        logger.step_event(StepEvent.START, "fetch", attempt=1)

        assert logger.get_logs() == []
        assert received[0]["event"] == "step-start"
        assert "[INFO] HttpClient/init: GET https://example.com" in capsys.readouterr().out

    def test_standalone_retries_do_not_accumulate(self, monkeypatch):
        import stepflow.core.state as state_module
        from stepflow.core.errors import RetryExhaustedError
        from stepflow.core.retry import _default_logger, retry_with_backoff

        monkeypatch.setattr(state_module.time, "sleep", lambda s: None)
        monkeypatch.setattr(_default_logger.settings, "console", False)
        before = len(_default_logger.get_logs())

        @retry_with_backoff(max_attempts=2, base_delay=0.001)
        def broken():
            raise ConnectionError("down")

        for _ in range(500):
            with pytest.raises(RetryExhaustedError):
                broken()

        assert len(_default_logger.get_logs()) == before == 0

    def test_http_client_logger_keeps_nothing(self):
        from unittest.mock import MagicMock

        from stepflow.integrations.http_client import HttpClient

        session = MagicMock()
        session.get.return_value.json.return_value = {"ok": True}
        client = HttpClient(base_url="https://example.com", session=session)
        client.logger.settings = Settings(console=False)
        for _ in range(50):
            client.get_json("/status")
        assert client.logger.get_logs() == []
