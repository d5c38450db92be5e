"""
RetryPolicy测试
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.core.retry import RetryPolicy


class TransientError(Exception):
    pass


def flaky(failures, result="ok", error=TransientError):
    """前 failures 次调用抛出异常，之后返回 result"""
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error("boom")
        return result

    return operation, calls


@pytest.mark.asyncio
class TestRetryPolicy:

    async def test_success_first_try(self):
        operation, calls = flaky(0)

        assert await RetryPolicy(max_attempts=3, delay=0).run(operation) == "ok"
        assert calls["count"] == 1

    async def test_retries_until_success(self):
        operation, calls = flaky(2)

        assert await RetryPolicy(max_attempts=3, delay=0).run(operation) == "ok"
        assert calls["count"] == 3

    async def test_raises_last_error_when_exhausted(self):
        operation, calls = flaky(5)

        with pytest.raises(TransientError):
            await RetryPolicy(max_attempts=3, delay=0).run(operation)
        assert calls["count"] == 3

    async def test_non_retryable_error_propagates_immediately(self):
        operation, calls = flaky(1, error=KeyError)
        policy = RetryPolicy(max_attempts=3, delay=0, retry_on=(TransientError,))

        with pytest.raises(KeyError):
            await policy.run(operation)
        assert calls["count"] == 1

    async def test_fixed_delay_between_attempts(self):
        operation, _ = flaky(2)
        sleep = AsyncMock()

        with patch("app.core.retry.asyncio.sleep", sleep):
            await RetryPolicy(max_attempts=4, delay=1.0).run(operation)

        assert sleep.await_count == 2
        assert all(call.args == (1.0,) for call in sleep.await_args_list)

    def test_defaults_match_one_call_plus_three_retries(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 4
        assert policy.delay == 1.0

    @pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"delay": -1}])
    def test_invalid_policy(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)
