import asyncio

import pytest

from songjam.errors import StoreError, TransientStoreError
from songjam.models import RetryPolicy
from songjam.retry import with_retry


class Recorder:
    def __init__(self, failures, exc=TransientStoreError):
        self.failures = failures
        self.exc = exc
        self.calls = 0
        self.sleeps = []

    async def operation(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return "done"

    async def sleep(self, seconds):
        self.sleeps.append(seconds)


def test_succeeds_after_transient_failures_with_exponential_delay():
    rec = Recorder(failures=2)
    policy = RetryPolicy(attempts=3, initial_delay_ms=100)

    result = asyncio.run(with_retry(rec.operation, policy, sleep=rec.sleep))

    assert result == "done"
    assert rec.calls == 3
    assert rec.sleeps == [0.1, 0.2]


def test_reraises_after_attempts_exhausted():
    rec = Recorder(failures=10)
    policy = RetryPolicy(attempts=2, initial_delay_ms=1000)

    with pytest.raises(TransientStoreError, match="failure 3"):
        asyncio.run(with_retry(rec.operation, policy, sleep=rec.sleep))

    assert rec.calls == 3
    assert rec.sleeps == [1.0, 2.0]


def test_zero_attempts_means_single_call():
    rec = Recorder(failures=1)

    with pytest.raises(TransientStoreError):
        asyncio.run(with_retry(rec.operation, RetryPolicy(attempts=0, initial_delay_ms=0), sleep=rec.sleep))

    assert rec.calls == 1
    assert rec.sleeps == []


def test_non_retryable_error_propagates_immediately():
    rec = Recorder(failures=1, exc=StoreError)

    with pytest.raises(StoreError):
        asyncio.run(with_retry(rec.operation, RetryPolicy(attempts=3, initial_delay_ms=0), sleep=rec.sleep))

    assert rec.calls == 1


def test_custom_retry_on():
    rec = Recorder(failures=1, exc=ValueError)

    result = asyncio.run(
        with_retry(rec.operation, RetryPolicy(attempts=1, initial_delay_ms=0), retry_on=(ValueError,), sleep=rec.sleep)
    )

    assert result == "done"
    assert rec.calls == 2


def test_policy_rejects_negative_values():
    with pytest.raises(ValueError):
        RetryPolicy(attempts=-1, initial_delay_ms=0)
    with pytest.raises(ValueError):
        RetryPolicy(attempts=1, initial_delay_ms=-5)
