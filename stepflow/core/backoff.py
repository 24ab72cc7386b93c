#!/usr/bin/env python3
"""
Backoff policies with optional jitter.

Usage:
    from stepflow.core.backoff import Backoff, calculate_delay

    policy = Backoff.exponential(base="500 millis", factor=2, max="5 seconds")
    delay = calculate_delay(policy, attempt=2)  # 2.0 seconds

Delays are computed in three stages: the raw delay of the variant, the
optional `max` cap, then jitter. `attempt` is the zero-based retry count,
so the first retry after the initial failure uses attempt 0.
"""

import math
import random as _random
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .durations import DurationInput, to_seconds

JITTER_TYPES = ("full", "equal", "decorrelated")
DEFAULT_EXPONENTIAL_FACTOR = 2.0
DEFAULT_DECORRELATED_FACTOR = 3.0


@dataclass(frozen=True)
class JitterConfig:
    """How to randomise a capped delay."""

    type: str = "full"
    factor: Optional[float] = None

    def __post_init__(self):
        if self.type not in JITTER_TYPES:
            raise ValueError(f"Unknown jitter type {self.type!r}, expected one of {JITTER_TYPES}")
        if self.factor is not None and self.factor < 0:
            raise ValueError("Jitter factor must not be negative")


JitterInput = Union[bool, JitterConfig, None]


def _check_jitter(jitter):
    if jitter is None or isinstance(jitter, (bool, JitterConfig)):
        return
    raise TypeError(f"jitter must be a bool or JitterConfig, got {type(jitter).__name__}")


@dataclass(frozen=True)
class ExponentialBackoff:
    base: DurationInput
    factor: float = DEFAULT_EXPONENTIAL_FACTOR
    max: Optional[DurationInput] = None
    jitter: JitterInput = None

    def __post_init__(self):
        if self.factor is not None and self.factor < 0:
            raise ValueError("Exponential backoff factor must not be negative")
        _check_jitter(self.jitter)


@dataclass(frozen=True)
class LinearBackoff:
    initial: DurationInput
    increment: DurationInput
    max: Optional[DurationInput] = None
    jitter: JitterInput = None

    def __post_init__(self):
        # to_seconds rejects negative increments
        to_seconds(self.increment)
        _check_jitter(self.jitter)


@dataclass(frozen=True)
class ConstantBackoff:
    duration: DurationInput
    jitter: JitterInput = None

    def __post_init__(self):
        _check_jitter(self.jitter)


BackoffConfig = Union[ExponentialBackoff, LinearBackoff, ConstantBackoff]
BACKOFF_TYPES = (ExponentialBackoff, LinearBackoff, ConstantBackoff)


def is_backoff_config(value) -> bool:
    """Check whether value is one of the backoff variants."""
    return isinstance(value, BACKOFF_TYPES)


def calculate_delay(
    config: BackoffConfig,
    attempt: int,
    random: Callable[[], float] = _random.random,
) -> float:
    """
    Compute the delay in seconds before retry number `attempt`.

    Args:
        config: Backoff variant
        attempt: Zero-based retry count
        random: Source of floats in [0, 1), injectable for tests

    Returns:
        Non-negative delay in seconds
    """
    if attempt < 0:
        raise ValueError("attempt must not be negative")

    delay = _base_delay(config, attempt)
    delay = _apply_max(config, delay)
    delay = _apply_jitter(config.jitter, delay, random)
    return max(0.0, delay)


def _base_delay(config: BackoffConfig, attempt: int) -> float:
    if isinstance(config, ExponentialBackoff):
        factor = DEFAULT_EXPONENTIAL_FACTOR if config.factor is None else config.factor
        base = to_seconds(config.base)
        if base == 0:
            return 0.0
        try:
            return base * float(factor) ** attempt
        except OverflowError:
            # capped by _apply_max when max is set
            return math.inf
    if isinstance(config, LinearBackoff):
        return to_seconds(config.initial) + attempt * to_seconds(config.increment)
    if isinstance(config, ConstantBackoff):
        return to_seconds(config.duration)
    raise TypeError(f"Not a backoff config: {config!r}")


def _apply_max(config: BackoffConfig, delay: float) -> float:
    cap = getattr(config, "max", None)
    if cap is None:
        return delay
    return min(delay, to_seconds(cap))


def _apply_jitter(jitter: JitterInput, delay: float, random: Callable[[], float]) -> float:
    if not jitter or math.isinf(delay):
        return delay

    config = JitterConfig("full") if jitter is True else jitter

    if config.type == "full":
        return random() * delay
    if config.type == "equal":
        half = delay / 2
        return half + random() * half
    # Decorrelated jitter scales the current capped delay, not the previous one.
    factor = DEFAULT_DECORRELATED_FACTOR if config.factor is None else config.factor
    return random() * delay * factor


class Backoff:
    """Constructors and named presets for backoff configs."""

    @staticmethod
    def exponential(base: DurationInput, factor: float = DEFAULT_EXPONENTIAL_FACTOR,
                    max: Optional[DurationInput] = None,
                    jitter: JitterInput = None) -> ExponentialBackoff:
        return ExponentialBackoff(base=base, factor=factor, max=max, jitter=jitter)

    @staticmethod
    def linear(initial: DurationInput, increment: DurationInput,
               max: Optional[DurationInput] = None,
               jitter: JitterInput = None) -> LinearBackoff:
        return LinearBackoff(initial=initial, increment=increment, max=max, jitter=jitter)

    @staticmethod
    def constant(duration: DurationInput, jitter: JitterInput = None) -> ConstantBackoff:
        return ConstantBackoff(duration=duration, jitter=jitter)

    # --- Presets ---

    @staticmethod
    def standard() -> ExponentialBackoff:
        return ExponentialBackoff(base="1 second", factor=2, max="30 seconds", jitter=True)

    @staticmethod
    def aggressive() -> ExponentialBackoff:
        return ExponentialBackoff(base="100 millis", factor=2, max="5 seconds", jitter=True)

    @staticmethod
    def patient() -> ExponentialBackoff:
        return ExponentialBackoff(base="5 seconds", factor=2, max="2 minutes", jitter=True)

    @staticmethod
    def simple() -> ConstantBackoff:
        return ConstantBackoff(duration="1 second", jitter=True)

    PRESETS = ("standard", "aggressive", "patient", "simple")

    @classmethod
    def preset(cls, name: str) -> BackoffConfig:
        """Look up a preset by name."""
        if name not in cls.PRESETS:
            raise ValueError(f"Unknown backoff preset {name!r}, expected one of {cls.PRESETS}")
        return getattr(cls, name)()
