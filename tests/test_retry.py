import pytest
import requests

from l2_leaderboard.utils import retry
from l2_leaderboard.utils.errors import RateLimited
from l2_leaderboard.utils.retry import RetryPolicy, is_rate_limit_error


class CodedError(Exception):
    def __init__(self, code, message="rpc error"):
        super().__init__(message)
        self.code = code


def _http_error(status: int) -> requests.HTTPError:
    resp = requests.Response()
    resp.status_code = status
    return requests.HTTPError(f"{status} Client Error", response=resp)


def test_rate_limit_predicate():
    assert is_rate_limit_error(CodedError("429"))
    assert is_rate_limit_error(CodedError(429))
    assert is_rate_limit_error(RateLimited("slow down"))
    assert is_rate_limit_error(RuntimeError("429 Client Error: Too Many Requests for url"))
    assert is_rate_limit_error(_http_error(429))
    assert not is_rate_limit_error(_http_error(500))
    assert not is_rate_limit_error(CodedError("500"))
    assert not is_rate_limit_error(ValueError("bad block"))


def test_retries_rate_limit_with_exponential_backoff():
    sleeps: list[float] = []
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        if calls["n"] <= 2:
            raise CodedError("429")
        return "ok"

    policy = RetryPolicy(max_retries=5, base_delay=1.0, sleep=sleeps.append)
    assert policy.call(flaky) == "ok"
    assert calls["n"] == 3
    assert sleeps == [1.0, 2.0]


def test_non_rate_limit_error_is_not_retried():
    sleeps: list[float] = []
    calls = {"n": 0}

    def broken():
        calls["n"] += 1
        raise ValueError("boom")

    policy = RetryPolicy(sleep=sleeps.append)
    with pytest.raises(ValueError, match="boom"):
        policy.call(broken)
    assert calls["n"] == 1
    assert sleeps == []


def test_exhausted_rate_limit_raises_rate_limited():
    sleeps: list[float] = []
    errors = [CodedError("429", f"attempt {i}") for i in range(3)]
    it = iter(errors)

    def always_limited():
        raise next(it)

    policy = RetryPolicy(max_retries=3, base_delay=0.5, sleep=sleeps.append)
    with pytest.raises(RateLimited, match="3 attempts") as err:
        policy(always_limited)
    assert err.value.__cause__ is errors[-1]
    assert err.value.code == "429"
    assert sleeps == [0.5, 1.0]


def test_exhausted_custom_retryable_raises_last_error():
    sleeps: list[float] = []
    errors = [TimeoutError(f"slow {i}") for i in range(2)]
    it = iter(errors)

    def always_slow():
        raise next(it)

    policy = RetryPolicy(
        max_retries=2,
        base_delay=1,
        is_retryable=lambda exc: isinstance(exc, TimeoutError),
        sleep=sleeps.append,
    )
    with pytest.raises(TimeoutError) as err:
        policy.call(always_slow)
    assert err.value is errors[-1]
    assert sleeps == [1]


def test_single_attempt_policy_never_sleeps():
    sleeps: list[float] = []
    policy = RetryPolicy(max_retries=1, sleep=sleeps.append)
    with pytest.raises(RateLimited):
        policy.call(lambda: (_ for _ in ()).throw(CodedError("429")))
    assert sleeps == []


def test_custom_predicate_and_arguments():
    sleeps: list[float] = []
    seen = []

    def fn(a, b=0):
        seen.append((a, b))
        if len(seen) == 1:
            raise TimeoutError("slow")
        return a + b

    policy = RetryPolicy(
        max_retries=2,
        base_delay=2,
        is_retryable=lambda exc: isinstance(exc, TimeoutError),
        sleep=sleeps.append,
    )
    assert policy.call(fn, 1, b=2) == 3
    assert seen == [(1, 2), (1, 2)]
    assert sleeps == [2]


def test_invalid_max_retries():
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=0)


def test_with_retry_passes_through_success_and_errors():
    assert retry.with_retry(lambda: 42) == 42
    with pytest.raises(KeyError):
        retry.with_retry(lambda: {}["missing"])
