#!/usr/bin/env python3
"""
Fetch a JSON document as a retried, time-limited workflow step.

    stepflow-fetch https://api.github.com/zen --attempts 5 --timeout "5 seconds"
"""

import argparse
import json
import sys

import requests
from dotenv import load_dotenv

from stepflow.core.backoff import Backoff
from stepflow.core.config import Settings
from stepflow.core.errors import WorkflowError
from stepflow.core.logger import WorkflowLogger
from stepflow.core.retry import retry
from stepflow.core.runner import Workflow, step
from stepflow.core.timeout import timeout
from stepflow.integrations.http_client import HttpClient


def build_workflow(client, attempts=3, deadline="10 seconds", settings=None):
    def fetch(url):
        return step("Fetch JSON", retry(
            max_attempts=attempts,
            delay=Backoff.aggressive(),
            exceptions=(requests.RequestException, WorkflowError),
        )(timeout(deadline)(lambda: client.get_json(url))))

    return Workflow.make("fetchJson", fetch, settings=settings)


def main(argv=None):
    load_dotenv()
    settings = Settings.from_env()
    logger = WorkflowLogger("FetchJson", settings=settings)
    parser = argparse.ArgumentParser(description="Fetch a JSON URL with retries")
    parser.add_argument("url")
    parser.add_argument("--attempts", type=int, default=3)
    parser.add_argument("--timeout", default="10 seconds")
    args = parser.parse_args(argv)

    workflow = build_workflow(HttpClient(), args.attempts, args.timeout, settings)
    try:
        data = workflow.run(args.url)
    except WorkflowError as e:
        logger.critical(f"Fetch failed: {e}", e.to_dict())
        return 1

    print(json.dumps(data, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
