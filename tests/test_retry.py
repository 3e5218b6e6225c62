"""Tests for the shared retry policy."""

import random
from unittest.mock import MagicMock

import pytest
import requests

from az_sku_finder.errors import TransientApiError
from az_sku_finder.retry import (
    RetryPolicy,
    compute_wait,
    execute_with_retry,
    is_retryable,
    retry_after_seconds,
)


def _http_error(status: int, headers: dict[str, str] | None = None) -> requests.HTTPError:
    resp = requests.Response()
    resp.status_code = status
    resp.headers.update(headers or {})
    return requests.HTTPError(f"{status} error", response=resp)


def _failing(times: int, exc: Exception, result: str = "ok") -> MagicMock:
    return MagicMock(side_effect=[exc] * times + [result])


class TestIsRetryable:
    def test_429(self) -> None:
        assert is_retryable(_http_error(429))

    def test_503(self) -> None:
        assert is_retryable(_http_error(503))

    def test_500_not_retryable(self) -> None:
        assert not is_retryable(_http_error(500))

    def test_403_not_retryable(self) -> None:
        assert not is_retryable(_http_error(403))

    def test_requests_timeout(self) -> None:
        assert is_retryable(requests.ReadTimeout("slow"))

    def test_requests_connection_error(self) -> None:
        assert is_retryable(requests.ConnectionError("reset"))

    def test_builtin_connection_reset(self) -> None:
        assert is_retryable(ConnectionResetError())

    def test_builtin_connection_refused(self) -> None:
        assert is_retryable(ConnectionRefusedError())

    def test_builtin_timeout(self) -> None:
        assert is_retryable(TimeoutError())

    def test_transient_api_error(self) -> None:
        assert is_retryable(TransientApiError("busy", status_code=429))

    def test_value_error_not_retryable(self) -> None:
        assert not is_retryable(ValueError("bad"))


class TestRetryAfter:
    def test_header_seconds(self) -> None:
        assert retry_after_seconds(_http_error(429, {"Retry-After": "7"})) == 7.0

    def test_missing_header(self) -> None:
        assert retry_after_seconds(_http_error(429)) is None

    def test_http_date_ignored(self) -> None:
        exc = _http_error(429, {"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert retry_after_seconds(exc) is None

    def test_transient_api_error_value(self) -> None:
        assert retry_after_seconds(TransientApiError("x", retry_after=3)) == 3

    def test_no_response(self) -> None:
        assert retry_after_seconds(requests.ConnectionError("x")) is None

    def test_ignored_for_503(self) -> None:
        assert retry_after_seconds(_http_error(503, {"Retry-After": "120"})) is None

    def test_transient_api_error_503_ignored(self) -> None:
        exc = TransientApiError("x", status_code=503, retry_after=120)
        assert retry_after_seconds(exc) is None


class TestComputeWait:
    @pytest.mark.parametrize("attempt", [0, 1, 2, 3])
    def test_exponential_with_bounded_jitter(self, attempt: int) -> None:
        rng = random.Random(attempt)
        base = 2**attempt
        wait = compute_wait(attempt, None, RetryPolicy(), rng)
        assert base <= wait <= base * 1.25

    def test_retry_after_overrides_backoff(self) -> None:
        wait = compute_wait(0, 10.0, RetryPolicy(), random.Random(1))
        assert 10.0 <= wait <= 12.5

    def test_no_jitter(self) -> None:
        assert compute_wait(3, None, RetryPolicy(jitter_ratio=0)) == 8.0

    def test_base_seconds_scales(self) -> None:
        policy = RetryPolicy(base_seconds=0.5, jitter_ratio=0)
        assert compute_wait(2, None, policy) == 2.0


class TestExecuteWithRetry:
    @pytest.mark.parametrize("k", [0, 1, 2, 3])
    def test_throttled_k_times_then_succeeds(self, k: int) -> None:
        action = _failing(k, _http_error(429))
        assert execute_with_retry(action, max_retries=3) == "ok"
        assert action.call_count == k + 1

    def test_non_retryable_called_once(self) -> None:
        action = MagicMock(side_effect=_http_error(404))
        with pytest.raises(requests.HTTPError):
            execute_with_retry(action, max_retries=5)
        assert action.call_count == 1

    def test_exhaustion_reraises_original(self) -> None:
        err = _http_error(503)
        action = MagicMock(side_effect=err)
        with pytest.raises(requests.HTTPError) as info:
            execute_with_retry(action, max_retries=2)
        assert info.value is err
        assert action.call_count == 3

    def test_zero_retries(self) -> None:
        action = MagicMock(side_effect=requests.ReadTimeout("slow"))
        with pytest.raises(requests.ReadTimeout):
            execute_with_retry(action, max_retries=0)
        assert action.call_count == 1

    def test_sleeps_between_attempts(self, _no_sleep) -> None:
        action = _failing(2, _http_error(429, {"Retry-After": "4"}))
        execute_with_retry(action, policy=RetryPolicy(jitter_ratio=0))
        assert [c.args[0] for c in _no_sleep.call_args_list] == [4.0, 4.0]

    def test_503_uses_exponential_backoff(self, _no_sleep) -> None:
        action = _failing(2, _http_error(503, {"Retry-After": "120"}))
        execute_with_retry(action, policy=RetryPolicy(jitter_ratio=0))
        assert [c.args[0] for c in _no_sleep.call_args_list] == [1.0, 2.0]

    def test_policy_max_retries_used_by_default(self) -> None:
        action = MagicMock(side_effect=ConnectionResetError())
        with pytest.raises(ConnectionResetError):
            execute_with_retry(action, policy=RetryPolicy(max_retries=1))
        assert action.call_count == 2

    def test_policy_execute_method(self) -> None:
        action = _failing(1, TimeoutError())
        assert RetryPolicy(max_retries=1).execute(action, "op") == "ok"


class TestRetryPolicy:
    def test_serializable(self) -> None:
        policy = RetryPolicy(max_retries=5, base_seconds=2.0)
        assert RetryPolicy.model_validate(policy.model_dump()) == policy

    def test_rejects_negative_retries(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
