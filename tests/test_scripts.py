import random
from unittest.mock import MagicMock

import pytest
import requests

from stepflow.core.errors import RetryExhaustedError
from stepflow.core.runner import run_workflow
from stepflow.scripts import backoff_table, fetch_json, order_demo


@pytest.fixture(autouse=True)
def quiet_env(monkeypatch):
    monkeypatch.setenv("STEPFLOW_CONSOLE", "false")
    monkeypatch.setenv("STEPFLOW_LOG_TO_FILE", "false")


class TestOrderDemo:

    def test_happy_path(self, quiet_settings):
        api = order_demo.UnreliableApi(failure_rate=0.0)
        workflow = order_demo.build_workflow(api, settings=quiet_settings, pause=0)
        report = run_workflow(workflow, "order-9")

        assert report["success"] is True
        assert report["result"] == {"success": True, "order": {"id": "order-9", "amount": 100}}
        assert report["completed_steps"] == [
            "Fetch order", "Validate order", "Process payment", "Send confirmation",
        ]
        assert api.calls == 2

    def test_validation_exhausts(self, quiet_settings):
        api = order_demo.UnreliableApi(failure_rate=1.0, rng=random.Random(0))
        workflow = order_demo.build_workflow(api, settings=quiet_settings, pause=0)
        report = run_workflow(workflow, "order-9")

        assert report["success"] is False
        assert report["error"]["type"] == "RetryExhaustedError"
        assert report["error"]["step"] == "Validate order"
        assert report["error"]["attempts"] == 3
        assert report["completed_steps"] == ["Fetch order"]
        assert api.calls == 3

    def test_main_success(self, capsys):
        assert order_demo.main(["--failure-rate", "0", "--pause", "0 seconds"]) == 0
        out = capsys.readouterr().out
        assert "Attempt 4: 10000ms" in out
        assert '"success": true' in out

    def test_main_rejects_bad_rate(self):
        with pytest.raises(SystemExit):
            order_demo.main(["--failure-rate", "2"])


class TestBackoffTable:

    def test_exponential(self, capsys):
        assert backoff_table.main(["exponential", "1 second", "--max", "10 seconds"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[1:] == [
            "  Attempt 0: 1000ms",
            "  Attempt 1: 2000ms",
            "  Attempt 2: 4000ms",
            "  Attempt 3: 8000ms",
            "  Attempt 4: 10000ms",
        ]

    def test_linear(self, capsys):
        backoff_table.main(["linear", "200 millis", "--increment", "100 millis", "--attempts", "3"])
        assert capsys.readouterr().out.splitlines()[1:] == [
            "  Attempt 0: 200ms",
            "  Attempt 1: 300ms",
            "  Attempt 2: 400ms",
        ]

    def test_jitter_is_bounded(self):
        config = backoff_table.build_config(backoff_table.argparse.Namespace(
            kind="constant", base="1 second", factor=2.0, increment="1 second",
            max=None, jitter="equal", jitter_factor=None,
        ))
        for delay in backoff_table.delays(config, 20, random.Random(3)):
            assert 0.5 <= delay <= 1.0

    def test_unknown_preset(self):
        with pytest.raises(SystemExit):
            backoff_table.main(["preset", "reckless"])


class TestFetchJson:

    def test_fetches_through_step(self, quiet_settings):
        client = MagicMock()
        client.get_json.side_effect = [requests.ConnectionError("reset"), {"zen": "ok"}]
        workflow = fetch_json.build_workflow(client, attempts=2, settings=quiet_settings)

        assert workflow.run("https://example.com/zen") == {"zen": "ok"}
        assert client.get_json.call_count == 2

    def test_gives_up(self, quiet_settings):
        client = MagicMock()
        client.get_json.side_effect = requests.ConnectionError("reset")
        workflow = fetch_json.build_workflow(client, attempts=1, settings=quiet_settings)

        with pytest.raises(RetryExhaustedError):
            workflow.run("https://example.com/zen")

    def test_main_failure_respects_console_setting(self, monkeypatch, capsys):
        client = MagicMock()
        client.get_json.side_effect = requests.ConnectionError("reset")
        monkeypatch.setattr(fetch_json, "HttpClient", lambda: client)

        assert fetch_json.main(["https://example.com/zen", "--attempts", "1"]) == 1
        assert capsys.readouterr().out == ""

    def test_main_failure_echoes_by_default(self, monkeypatch, capsys):
        monkeypatch.delenv("STEPFLOW_CONSOLE")
        client = MagicMock()
        client.get_json.side_effect = requests.ConnectionError("reset")
        monkeypatch.setattr(fetch_json, "HttpClient", lambda: client)

        assert fetch_json.main(["https://example.com/zen", "--attempts", "1"]) == 1
        assert "[CRITICAL] FetchJson/init: Fetch failed" in capsys.readouterr().out
