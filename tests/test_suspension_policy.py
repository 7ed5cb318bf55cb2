import pytest
from datetime import timedelta

from agrohaat.core.config import CounterPolicy
from agrohaat.models.notification import Notification
from agrohaat.models.profile import Profile
from agrohaat.services.bidding.suspension_policy import SuspensionPolicy, needs_catch_up


@pytest.mark.asyncio
async def test_below_threshold_only_counts(test_buyer: Profile, now):
    policy = SuspensionPolicy(threshold=3, suspension_days=7)

    outcome = await policy.on_abandonment(test_buyer.id, now)

    assert outcome.abandonment_count == 1
    assert outcome.suspended is False
    await test_buyer.refresh_from_db()
    assert test_buyer.last_abandonment_at == now
    assert test_buyer.bid_suspension_until is None
    assert await Notification.filter(user_id=test_buyer.id).count() == 0


@pytest.mark.asyncio
async def test_threshold_suspends_and_notifies(test_buyer: Profile, now):
    """Test 2 -> 3 abandonments gives a suspension of exactly seven days"""
    test_buyer.bid_abandonment_count = 2
    await test_buyer.save()
    policy = SuspensionPolicy(threshold=3, suspension_days=7)

    outcome = await policy.on_abandonment(test_buyer.id, now)

    assert outcome.suspended is True
    assert outcome.abandonment_count == 3
    assert outcome.suspended_until == now + timedelta(days=7)

    notification = await Notification.get(user_id=test_buyer.id)
    assert notification.title == "বিডিং থেকে সাময়িক বন্ধ"
    assert notification.metadata["action"] == "user_suspended"
    assert notification.metadata["abandonment_count"] == 3


@pytest.mark.asyncio
async def test_active_suspension_is_not_extended(test_buyer: Profile, now):
    """Test that a fourth abandonment during a suspension keeps the original end"""
    until = now + timedelta(days=5)
    test_buyer.bid_abandonment_count = 3
    test_buyer.bid_suspension_until = until
    await test_buyer.save()
    policy = SuspensionPolicy(threshold=3, suspension_days=7)

    outcome = await policy.on_abandonment(test_buyer.id, now)

    assert outcome.suspended is False
    assert outcome.abandonment_count == 4
    await test_buyer.refresh_from_db()
    assert test_buyer.bid_suspension_until == until


@pytest.mark.asyncio
async def test_cumulative_counter_resuspends_after_expiry(test_buyer: Profile, now):
    test_buyer.bid_abandonment_count = 3
    test_buyer.bid_suspension_until = now - timedelta(days=1)
    await test_buyer.save()
    policy = SuspensionPolicy(threshold=3, suspension_days=7, counter_policy=CounterPolicy.cumulative)

    outcome = await policy.on_abandonment(test_buyer.id, now)

    assert outcome.abandonment_count == 4
    assert outcome.suspended is True


@pytest.mark.asyncio
async def test_reset_on_expiry_counter_starts_over(test_buyer: Profile, now):
    """Test that with reset_on_expiry a served suspension clears the counter"""
    test_buyer.bid_abandonment_count = 3
    test_buyer.bid_suspension_until = now - timedelta(days=1)
    await test_buyer.save()
    policy = SuspensionPolicy(threshold=3, suspension_days=7, counter_policy=CounterPolicy.reset_on_expiry)

    outcome = await policy.on_abandonment(test_buyer.id, now)

    assert outcome.abandonment_count == 1
    assert outcome.suspended is False
    await test_buyer.refresh_from_db()
    assert test_buyer.bid_suspension_until is None


@pytest.mark.asyncio
async def test_needs_catch_up(test_buyer: Profile, now):
    test_buyer.bid_abandonment_count = 3
    assert needs_catch_up(test_buyer, now)

    test_buyer.bid_suspension_until = now + timedelta(days=1)
    assert not needs_catch_up(test_buyer, now)

    test_buyer.bid_suspension_until = now - timedelta(days=1)
    test_buyer.last_abandonment_at = now - timedelta(days=2)
    assert not needs_catch_up(test_buyer, now)

    test_buyer.last_abandonment_at = now - timedelta(hours=1)
    assert needs_catch_up(test_buyer, now)
