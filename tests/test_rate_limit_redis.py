"""Tests for the Redis rate limit store."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import redis

from research_gate.app.exceptions import RateLimitExceededError
from research_gate.app.rate_limit import RedisRateLimitStore, Reservation
from research_gate.app.rate_limit.redis_lua import (
    COMMIT_SCRIPT,
    INCREMENT_SCRIPT,
    RELEASE_SCRIPT,
    RESERVE_SCRIPT,
)

NOW = 1700000000.5


@pytest.fixture
def mock_redis():
    return AsyncMock()


@pytest.fixture
def store(mock_redis):
    return RedisRateLimitStore(
        redis_client=mock_redis,
        ttl_seconds=86400,
        default_max_triggers=10,
        clock=lambda: NOW,
    )


class TestRedisRateLimitStore:
    """Tests for Redis-backed counters."""

    @pytest.mark.asyncio
    async def test_check_allows_missing_key(self, store, mock_redis):
        mock_redis.hget.return_value = None
        assert await store.check("s1") is True
        mock_redis.hget.assert_awaited_once_with("autoresearch:ratelimit:s1", "count")

    @pytest.mark.asyncio
    async def test_check_denies_at_ceiling(self, store, mock_redis):
        mock_redis.hget.return_value = b"10"
        assert await store.check("s1") is False
    @pytest.mark.asyncio
    async def test_reserve_runs_lua_script(self, store, mock_redis):
        mock_redis.eval.return_value = [1, 1, b"1700000000.5"]

        reservation = await store.reserve("s1", 3)
        assert reservation == Reservation(session_id="s1", window_start=NOW)
        mock_redis.eval.assert_awaited_once_with(
            RESERVE_SCRIPT, 1, "autoresearch:ratelimit:s1", 3, 86400, "1700000000.5"
        )

    @pytest.mark.asyncio
    async def test_reserve_denied(self, store, mock_redis):
        mock_redis.eval.return_value = [0, 10, b""]
        assert await store.reserve("s1") is None
        assert await store.try_consume("s1") is False

    @pytest.mark.asyncio
    async def test_commit_sends_window_start(self, store, mock_redis):
        mock_redis.eval.return_value = 1
        reservation = Reservation(session_id="s1", window_start=1699999000.25)

        assert await store.commit(reservation) == 1
        mock_redis.eval.assert_awaited_once_with(
            COMMIT_SCRIPT,
            1,
            "autoresearch:ratelimit:s1",
            "1699999000.25",
            86400,
            "1700000000.5",
        )

    @pytest.mark.asyncio
    async def test_commit_without_window_always_counts(self, store, mock_redis):
        mock_redis.eval.return_value = 1
        await store.commit(Reservation(session_id="s1", window_start=None))
        assert mock_redis.eval.await_args.args[3] == ""

    @pytest.mark.asyncio
    async def test_increment_returns_new_count(self, store, mock_redis):
        mock_redis.eval.return_value = 4
        assert await store.increment("s1") == 4
        mock_redis.eval.assert_awaited_once_with(
            INCREMENT_SCRIPT, 1, "autoresearch:ratelimit:s1", 86400, "1700000000.5"
        )

    @pytest.mark.asyncio
    async def test_release(self, store, mock_redis):
        mock_redis.eval.return_value = 0
        assert await store.release("s1") == 0
        mock_redis.eval.assert_awaited_once_with(
            RELEASE_SCRIPT, 1, "autoresearch:ratelimit:s1", ""
        )

    @pytest.mark.asyncio
    async def test_release_scoped_to_window(self, store, mock_redis):
        mock_redis.eval.return_value = 3
        assert await store.release("s1", NOW) == 3
        mock_redis.eval.assert_awaited_once_with(
            RELEASE_SCRIPT, 1, "autoresearch:ratelimit:s1", "1700000000.5"
        )

    @pytest.mark.asyncio
    async def test_get_count_missing_key(self, store, mock_redis):
        mock_redis.hget.return_value = None
        assert await store.get_count("s1") == 0

    @pytest.mark.asyncio
    async def test_reset_deletes_key(self, store, mock_redis):
        await store.reset("s1")
        mock_redis.delete.assert_awaited_once_with("autoresearch:ratelimit:s1")

    @pytest.mark.asyncio
    async def test_clear_all_deletes_prefixed_keys(self, store, mock_redis):
        keys = [b"autoresearch:ratelimit:a", b"autoresearch:ratelimit:b"]

        async def scan_iter(match=None):
            for key in keys:
                yield key

        mock_redis.scan_iter = MagicMock(side_effect=scan_iter)
        await store.clear_all()
        mock_redis.delete.assert_awaited_once_with(*keys)

    @pytest.mark.asyncio
    async def test_enforce_uses_redis_count(self, store, mock_redis):
        mock_redis.hget.return_value = b"10"
        with pytest.raises(RateLimitExceededError) as exc_info:
            await store.enforce("s1")
        assert "10/10" in str(exc_info.value)


class TestRedisFailurePolicy:
    """Tests for fail-open / fail-closed behaviour."""

    @pytest.mark.asyncio
    async def test_fail_open_on_connection_error(self, store, mock_redis):
        mock_redis.eval.side_effect = redis.ConnectionError("down")
        with patch("research_gate.app.rate_limit.backends.settings") as mock_settings:
            mock_settings.rate_limit_fail_closed = False
            assert await store.try_consume("s1") is True

    @pytest.mark.asyncio
    async def test_fail_closed_on_connection_error(self, store, mock_redis):
        mock_redis.eval.side_effect = redis.ConnectionError("down")
        with patch("research_gate.app.rate_limit.backends.settings") as mock_settings:
            mock_settings.rate_limit_fail_closed = True
            assert await store.try_consume("s1") is False

    @pytest.mark.asyncio
    async def test_check_fail_closed_on_timeout(self, store, mock_redis):
        mock_redis.hget.side_effect = redis.TimeoutError("slow")
        with patch("research_gate.app.rate_limit.backends.settings") as mock_settings:
            mock_settings.rate_limit_fail_closed = True
            assert await store.check("s1") is False

    @pytest.mark.asyncio
    async def test_get_count_reads_zero_on_error(self, store, mock_redis):
        mock_redis.hget.side_effect = redis.RedisError("boom")
        assert await store.get_count("s1") == 0

    @pytest.mark.asyncio
    async def test_fail_open_reservation_has_no_window(self, store, mock_redis):
        mock_redis.eval.side_effect = redis.TimeoutError("slow")
        with patch("research_gate.app.rate_limit.backends.settings") as mock_settings:
            mock_settings.rate_limit_fail_closed = False
            reservation = await store.reserve("s1")
        assert reservation == Reservation(session_id="s1", window_start=None)
