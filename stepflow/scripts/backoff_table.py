#!/usr/bin/env python3
"""
Print the retry delays a backoff config produces.

    stepflow-backoff-table exponential --base "1 second" --factor 2 --max "10 seconds"
    stepflow-backoff-table linear --base "200 millis" --increment "100 millis" --attempts 8
    stepflow-backoff-table preset standard --seed 1
"""

import argparse
import random
import sys

from dotenv import load_dotenv

from stepflow.core.backoff import Backoff, JitterConfig, calculate_delay


def build_config(args):
    jitter = JitterConfig(args.jitter, args.jitter_factor) if args.jitter else None
    if args.kind == "exponential":
        return Backoff.exponential(base=args.base, factor=args.factor, max=args.max, jitter=jitter)
    if args.kind == "linear":
        return Backoff.linear(initial=args.base, increment=args.increment, max=args.max, jitter=jitter)
    if args.kind == "constant":
        return Backoff.constant(args.base, jitter=jitter)
    return Backoff.preset(args.base)


def delays(config, attempts, rng):
    return [calculate_delay(config, i, rng.random) for i in range(attempts)]


def main(argv=None):
    load_dotenv()
    parser = argparse.ArgumentParser(description="Show backoff delays per retry")
    parser.add_argument("kind", choices=["exponential", "linear", "constant", "preset"])
    parser.add_argument("base", nargs="?", default="1 second",
                        help="Base/initial/constant duration, or preset name")
    parser.add_argument("--factor", type=float, default=2.0)
    parser.add_argument("--increment", default="1 second")
    parser.add_argument("--max", default=None)
    parser.add_argument("--jitter", choices=["full", "equal", "decorrelated"])
    parser.add_argument("--jitter-factor", type=float, default=None)
    parser.add_argument("--attempts", type=int, default=5)
    parser.add_argument("--seed", type=int)
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (TypeError, ValueError) as e:
        parser.error(str(e))

    print(f"{config}")
    for i, delay in enumerate(delays(config, args.attempts, random.Random(args.seed))):
        print(f"  Attempt {i}: {delay * 1000:.0f}ms")
    return 0


if __name__ == "__main__":
    sys.exit(main())
