#!/usr/bin/env python3
"""
Order processing demo.

Runs a five-step workflow against a simulated, unreliable API:
fetch, validate (exponential retry), pause, payment (timeout + retry)
and confirmation.

    stepflow-order-demo --order-id order-123 --failure-rate 0.5 --seed 7
"""

import argparse
import json
import random
import sys

from dotenv import load_dotenv

from stepflow.core.backoff import Backoff, calculate_delay
from stepflow.core.config import Settings
from stepflow.core.runner import Workflow, run_workflow, sleep, step
from stepflow.core.retry import retry
from stepflow.core.timeout import timeout


class UnreliableApi:
    """Fails a configurable share of calls."""

    def __init__(self, failure_rate=0.5, rng=None):
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()
        self.calls = 0

    def call(self, item_id):
        self.calls += 1
        if self.rng.random() < self.failure_rate:
            print(f"    API call for {item_id} failed!")
            raise ConnectionError(f"API error for {item_id}")
        print(f"    API call for {item_id} succeeded")
        return {"id": item_id, "data": f"result-{item_id}"}


def build_workflow(api, settings=None, pause="1 second"):
    """Build the order workflow around an API client."""

    def process_order(order_id):
        order = step("Fetch order", lambda: {"id": order_id, "amount": 100})

        step("Validate order", retry(
            max_attempts=3,
            delay=Backoff.exponential(base="500 millis", factor=2, max="5 seconds"),
        )(lambda: api.call(order_id)))

        sleep(pause)

        step("Process payment", retry(
            max_attempts=3,
            delay=Backoff.standard(),
        )(timeout("10 seconds")(lambda: api.call(f"payment-{order_id}"))))

        step("Send confirmation", lambda: {"sent": True, "email": "user@example.com"})

        return {"success": True, "order": order}

    return Workflow.make("processOrder", process_order, settings=settings)


def print_backoff_examples():
    print("Backoff delay examples (exponential 1s base, factor 2, max 10s):")
    policy = Backoff.exponential(base="1 second", factor=2, max="10 seconds")
    for i in range(5):
        delay = calculate_delay(policy, i, lambda: 1)
        print(f"  Attempt {i}: {delay * 1000:.0f}ms")


def main(argv=None):
    load_dotenv()
    parser = argparse.ArgumentParser(description="Run the order processing demo workflow")
    parser.add_argument("--order-id", default="order-123")
    parser.add_argument("--failure-rate", type=float, default=0.5,
                        help="Share of simulated API calls that fail (0-1)")
    parser.add_argument("--seed", type=int, help="Seed for the simulated API")
    parser.add_argument("--pause", default="1 second", help="Pause between validation and payment")
    args = parser.parse_args(argv)

    if not 0 <= args.failure_rate <= 1:
        parser.error("--failure-rate must be between 0 and 1")

    settings = Settings.from_env()
    api = UnreliableApi(args.failure_rate, random.Random(args.seed))
    workflow = build_workflow(api, settings=settings, pause=args.pause)

    print("=== Durable step workflow demo ===\n")
    print_backoff_examples()
    print("\n--- Running Workflow ---")

    report = run_workflow(workflow, args.order_id)
    summary = {k: v for k, v in report.items() if k != "logs"}
    print(f"\nFinal result: {json.dumps(summary, indent=2, default=str)}")
    return 0 if report["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
