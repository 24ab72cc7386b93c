import pytest

from stepflow.core.config import Settings


class FakeClock:
    """Monotonic clock advanced only by FakeClock.sleep."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class Flaky:
    """Operation failing a fixed number of times before succeeding."""

    def __init__(self, failures, value="ok", error=ConnectionError):
        self.failures = failures
        self.value = value
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return self.value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def quiet_settings():
    return Settings(console=False)


@pytest.fixture
def flaky():
    return Flaky
