"""Tests for rate limiting service."""

import asyncio

import pytest

from reporting_gateway.services.rate_limit_service import RateLimitService


@pytest.fixture
def rate_limit_service(fake_clock):
    """Create rate limit service instance on a controllable clock."""
    return RateLimitService(burst=5, refill_interval_ms=1000, refill_amount=1, clock=fake_clock)


@pytest.mark.asyncio
async def test_first_request_allowed(rate_limit_service):
    """Test that a first-seen key starts with a full bucket."""
    decision = await rate_limit_service.allow("u:test")

    assert decision.allowed is True
    assert decision.remaining == 4


@pytest.mark.asyncio
async def test_rate_limit_exceeded(rate_limit_service):
    """Test that the bucket empties after the burst."""
    for i in range(5):
        decision = await rate_limit_service.allow("u:test")
        assert decision.allowed is True
        assert decision.remaining == 5 - (i + 1)

    decision = await rate_limit_service.allow("u:test")
    assert decision.allowed is False
    assert decision.remaining == 0
    assert decision.retry_after_ms == 1000


@pytest.mark.asyncio
async def test_keys_are_independent(rate_limit_service):
    """Test that one caller's bucket does not affect another."""
    for _ in range(5):
        await rate_limit_service.allow("u:a")

    assert (await rate_limit_service.allow("u:a")).allowed is False
    assert (await rate_limit_service.allow("u:b")).allowed is True


@pytest.mark.asyncio
async def test_refill_by_whole_intervals(rate_limit_service, fake_clock):
    """Test lazy refill adds tokens per elapsed interval."""
    for _ in range(5):
        await rate_limit_service.allow("u:test")

    fake_clock.advance(0.5)
    assert (await rate_limit_service.allow("u:test")).allowed is False

    fake_clock.advance(2.5)
    decision = await rate_limit_service.allow("u:test")
    assert decision.allowed is True
    # three intervals elapsed since the bucket was created, one token consumed
    assert decision.remaining == 2
    assert rate_limit_service.get_bucket("u:test").tokens == 2


@pytest.mark.asyncio
async def test_refill_remainder_carried_forward(rate_limit_service, fake_clock):
    """Test that fractional intervals are not lost between checks."""
    for _ in range(5):
        await rate_limit_service.allow("u:test")
    start = rate_limit_service.get_bucket("u:test").last_refill

    fake_clock.advance(1.5)
    assert (await rate_limit_service.allow("u:test")).allowed is True
    assert rate_limit_service.get_bucket("u:test").last_refill == pytest.approx(start + 1000)

    fake_clock.advance(0.5)
    assert (await rate_limit_service.allow("u:test")).allowed is True


@pytest.mark.asyncio
async def test_tokens_capped_at_burst(rate_limit_service, fake_clock):
    """Test that long idle periods never overfill the bucket."""
    await rate_limit_service.allow("u:test")
    fake_clock.advance(3600)

    decision = await rate_limit_service.allow("u:test")
    bucket = rate_limit_service.get_bucket("u:test")
    assert decision.remaining == 4
    assert 0 <= bucket.tokens <= rate_limit_service.burst


@pytest.mark.asyncio
async def test_refill_amount_per_interval(fake_clock):
    """Test a refill amount larger than one."""
    service = RateLimitService(burst=10, refill_interval_ms=500, refill_amount=3, clock=fake_clock)
    for _ in range(10):
        await service.allow("u:test")

    fake_clock.advance(1.0)
    decision = await service.allow("u:test")
    assert decision.allowed is True
    assert decision.remaining == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("requests", [3, 5, 12])
async def test_concurrent_requests_never_double_spend(rate_limit_service, requests):
    """Test that concurrent checks admit exactly min(N, burst)."""
    decisions = await asyncio.gather(
        *(rate_limit_service.allow("u:same") for _ in range(requests))
    )

    allowed = [d for d in decisions if d.allowed]
    assert len(allowed) == min(requests, rate_limit_service.burst)
    assert rate_limit_service.get_bucket("u:same").tokens == rate_limit_service.burst - len(allowed)


@pytest.mark.asyncio
async def test_user_key_prefix(rate_limit_service):
    """Test per-user checks use the u: key."""
    await rate_limit_service.check_user_rate_limit("user-123")
    assert rate_limit_service.get_bucket("u:user-123") is not None


@pytest.mark.asyncio
async def test_reset_rate_limit(rate_limit_service):
    """Test resetting rate limit."""
    for _ in range(5):
        await rate_limit_service.allow("u:test")

    await rate_limit_service.reset_rate_limit("u:test")

    decision = await rate_limit_service.allow("u:test")
    assert decision.allowed is True
    assert decision.remaining == 4


@pytest.mark.asyncio
async def test_cleanup_idle(rate_limit_service, fake_clock):
    """Test that buckets refilled to capacity are swept."""
    await rate_limit_service.allow("u:idle")
    for _ in range(5):
        await rate_limit_service.allow("u:busy")

    fake_clock.advance(1.0)
    removed = await rate_limit_service.cleanup_idle()

    assert removed == 1
    assert rate_limit_service.get_bucket("u:idle") is None
    assert rate_limit_service.get_bucket("u:busy") is not None


def test_rejects_non_positive_configuration():
    with pytest.raises(ValueError):
        RateLimitService(burst=0)
