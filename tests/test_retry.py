from functools import partial

import pytest

from routewise.utils.exceptions import PermanentError, ProviderRateLimitError, ProviderTimeoutError
from routewise.utils.retry import RetryConfig, retry_with_exponential_backoff


class Flaky:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0

    def call(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return "ok"


def test_transient_errors_are_retried_with_backoff():
    delays = []
    flaky = Flaky([ProviderTimeoutError("slow"), ProviderTimeoutError("slow")])
    call = retry_with_exponential_backoff(max_attempts=3, base_delay=0.5, sleep=delays.append)(flaky.call)

    assert call() == "ok"
    assert flaky.calls == 3
    assert delays == [0.5, 1.0]


def test_last_failure_is_raised():
    delays = []
    flaky = Flaky([ProviderTimeoutError("slow")] * 3)
    call = retry_with_exponential_backoff(max_attempts=3, sleep=delays.append)(flaky.call)

    with pytest.raises(ProviderTimeoutError):
        call()
    assert flaky.calls == 3
    assert len(delays) == 2


def test_permanent_errors_are_not_retried():
    flaky = Flaky([PermanentError("bad key")])
    call = retry_with_exponential_backoff(max_attempts=3, sleep=lambda _: None)(flaky.call)

    with pytest.raises(PermanentError):
        call()
    assert flaky.calls == 1


def test_callables_without_a_name_can_be_retried():
    flaky = Flaky([ProviderTimeoutError("slow")])
    call = retry_with_exponential_backoff(max_attempts=2, sleep=lambda _: None)(partial(flaky.call))

    assert call() == "ok"
    assert flaky.calls == 2


def test_retry_after_overrides_backoff():
    config = RetryConfig(max_delay=10.0)

    assert config.delay_for(0, ProviderRateLimitError("quota", retry_after=3)) == 3.0
    assert config.delay_for(0, ProviderRateLimitError("quota", retry_after=60)) == 10.0
    assert config.delay_for(2) == 4.0
