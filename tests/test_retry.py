"""Tests for retry classification and backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from promo.common.errors import ApiError, GatewayError, NetworkError, ValidationError
from promo.common.retry import (
    RetryConfig,
    call_with_retry,
    is_rate_limit_error,
    is_retryable_error,
)


class TestRetryableErrors:
    def test_network_error_is_retryable(self):
        assert is_retryable_error(NetworkError())

    def test_rate_limit_is_retryable(self):
        error = ApiError(status_code=429)
        assert is_rate_limit_error(error)
        assert is_retryable_error(error)

    def test_server_error_is_retryable(self):
        assert is_retryable_error(ApiError(status_code=502))

    def test_client_errors_are_not_retryable(self):
        assert not is_retryable_error(ApiError(status_code=404))
        assert not is_retryable_error(ValidationError(status_code=400))

    def test_gateway_error_is_not_retried_automatically(self):
        """Gateway failures are surfaced so the user decides to try again."""
        assert not is_retryable_error(GatewayError())

    def test_unrelated_exceptions_are_not_retryable(self):
        assert not is_retryable_error(ValueError("nope"))


class TestRetryConfig:
    def test_exponential_backoff(self):
        config = RetryConfig(initial_delay=0.5, exponential_base=2.0, max_delay=10)

        assert config.delay_for(1) == 0.5
        assert config.delay_for(2) == 1.0
        assert config.delay_for(3) == 2.0

    def test_delay_is_capped(self):
        config = RetryConfig(initial_delay=1, max_delay=3)

        assert config.delay_for(10) == 3


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        func = AsyncMock(return_value="ok")

        assert await call_with_retry(func, RetryConfig(), name="test") == "ok"
        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self):
        func = AsyncMock(side_effect=[NetworkError(), NetworkError(), "ok"])
        config = RetryConfig(max_attempts=3, initial_delay=0.5)

        with patch("promo.common.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await call_with_retry(func, config, name="test")

        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_permanent_error_is_raised_immediately(self):
        func = AsyncMock(side_effect=ValidationError("bad"))

        with pytest.raises(ValidationError):
            await call_with_retry(func, RetryConfig(initial_delay=0), name="test")

        func.assert_awaited_once()
