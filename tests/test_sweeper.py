import asyncio
import pytest
from datetime import timedelta

from agrohaat.enums.bid_status import BidStatus
from agrohaat.models.notification import Notification
from agrohaat.models.profile import Profile
from agrohaat.services.bidding.sweeper import deadline_sweeper


@pytest.mark.asyncio
async def test_sweep_abandons_expired_bid(test_buyer: Profile, test_product, make_bid, now):
    """Test that an accepted bid past its deadline is abandoned and the buyer told"""
    bid = await make_bid(test_product, test_buyer, status=BidStatus.accepted,
                         confirmation_deadline=now - timedelta(minutes=1))

    summary = await deadline_sweeper.run(now)

    assert summary.abandoned_bids == 1
    assert summary.abandoned_bid_ids == [bid.id]
    assert summary.failed_bids == 0

    await bid.refresh_from_db()
    assert bid.status == BidStatus.abandoned
    assert bid.abandoned_at is not None

    await test_buyer.refresh_from_db()
    assert test_buyer.bid_abandonment_count == 1

    notification = await Notification.get(user_id=test_buyer.id)
    assert notification.title == "আপনার বিড সময়সীমা শেষ"
    assert notification.metadata == {
        "bid_id": str(bid.id),
        "product_id": str(test_product.id),
        "action": "bid_expired",
    }


@pytest.mark.asyncio
async def test_sweep_leaves_live_bids_alone(test_buyer, test_product, make_bid, now):
    in_window = await make_bid(test_product, test_buyer, status=BidStatus.accepted,
                               confirmation_deadline=now + timedelta(hours=1))
    confirmed = await make_bid(test_product, test_buyer, status=BidStatus.confirmed,
                               confirmation_deadline=now - timedelta(hours=1))
    pending = await make_bid(test_product, test_buyer)

    summary = await deadline_sweeper.run(now)

    assert summary.abandoned_bids == 0
    for bid, status in ((in_window, BidStatus.accepted), (confirmed, BidStatus.confirmed), (pending, BidStatus.pending)):
        await bid.refresh_from_db()
        assert bid.status == status


@pytest.mark.asyncio
async def test_sweep_is_idempotent(test_buyer, test_product, make_bid, now):
    """Test that a second sweep neither counts nor notifies again"""
    await make_bid(test_product, test_buyer, status=BidStatus.accepted,
                   confirmation_deadline=now - timedelta(minutes=5))

    first = await deadline_sweeper.run(now)
    second = await deadline_sweeper.run(now + timedelta(minutes=5))

    assert first.abandoned_bids == 1
    assert second.abandoned_bids == 0
    await test_buyer.refresh_from_db()
    assert test_buyer.bid_abandonment_count == 1
    assert await Notification.filter(user_id=test_buyer.id).count() == 1


@pytest.mark.asyncio
async def test_sweep_reaching_threshold_suspends_buyer(test_buyer, test_product, make_bid, now):
    """Test that the third abandonment suspends for exactly seven days"""
    test_buyer.bid_abandonment_count = 2
    await test_buyer.save()
    await make_bid(test_product, test_buyer, status=BidStatus.accepted,
                   confirmation_deadline=now - timedelta(minutes=1))

    summary = await deadline_sweeper.run(now)

    assert summary.suspended_users == 1
    assert summary.suspended_user_ids == [test_buyer.id]
    await test_buyer.refresh_from_db()
    assert test_buyer.bid_abandonment_count == 3
    assert test_buyer.bid_suspension_until == now + timedelta(days=7)

    titles = {n.title for n in await Notification.filter(user_id=test_buyer.id)}
    assert titles == {"আপনার বিড সময়সীমা শেষ", "বিডিং থেকে সাময়িক বন্ধ"}


@pytest.mark.asyncio
async def test_sweep_several_bids_of_one_buyer(test_buyer, test_product, make_bid, now):
    """Test that every abandonment is counted and the suspension applied once"""
    test_buyer.bid_abandonment_count = 1
    await test_buyer.save()
    for amount in ("1000.00", "1100.00", "1200.00"):
        await make_bid(test_product, test_buyer, amount=amount, status=BidStatus.accepted,
                       confirmation_deadline=now - timedelta(minutes=1))

    summary = await deadline_sweeper.run(now)

    assert summary.abandoned_bids == 3
    assert summary.suspended_users == 1
    await test_buyer.refresh_from_db()
    assert test_buyer.bid_abandonment_count == 4
    assert test_buyer.bid_suspension_until == now + timedelta(days=7)
    assert await Notification.filter(user_id=test_buyer.id, title="বিডিং থেকে সাময়িক বন্ধ").count() == 1


@pytest.mark.asyncio
async def test_sweep_catches_up_missed_suspension(test_buyer, now, db):
    """Test that a user over the threshold without a suspension gets one"""
    test_buyer.bid_abandonment_count = 3
    test_buyer.last_abandonment_at = now - timedelta(hours=1)
    await test_buyer.save()

    summary = await deadline_sweeper.run(now)

    assert summary.abandoned_bids == 0
    assert summary.suspended_user_ids == [test_buyer.id]
    await test_buyer.refresh_from_db()
    assert test_buyer.bid_suspension_until == now + timedelta(days=7)


@pytest.mark.asyncio
async def test_sweep_does_not_resuspend_served_suspension(test_buyer, now, db):
    """Test that an expired suspension with no newer abandonment is left alone"""
    test_buyer.bid_abandonment_count = 3
    test_buyer.last_abandonment_at = now - timedelta(days=10)
    test_buyer.bid_suspension_until = now - timedelta(days=3)
    await test_buyer.save()

    summary = await deadline_sweeper.run(now)

    assert summary.suspended_users == 0
    await test_buyer.refresh_from_db()
    assert test_buyer.bid_suspension_until == now - timedelta(days=3)


@pytest.mark.asyncio
async def test_overlapping_sweeps_split_the_work(test_buyer, test_product, make_bid, now):
    """Test that two sweeps running at once abandon and count each bid once"""
    bids = [
        await make_bid(test_product, test_buyer, amount=amount, status=BidStatus.accepted,
                       confirmation_deadline=now - timedelta(minutes=1))
        for amount in ("1000.00", "1100.00", "1200.00")
    ]

    first, second = await asyncio.gather(deadline_sweeper.run(now), deadline_sweeper.run(now))

    assert first.abandoned_bids + second.abandoned_bids == len(bids)
    assert sorted(first.abandoned_bid_ids + second.abandoned_bid_ids) == sorted(bid.id for bid in bids)
    assert first.suspended_users + second.suspended_users == 1
    assert first.failed_bids == second.failed_bids == 0

    await test_buyer.refresh_from_db()
    assert test_buyer.bid_abandonment_count == len(bids)
    assert test_buyer.bid_suspension_until == now + timedelta(days=7)
    assert await Notification.filter(user_id=test_buyer.id, title="আপনার বিড সময়সীমা শেষ").count() == len(bids)
    assert await Notification.filter(user_id=test_buyer.id, title="বিডিং থেকে সাময়িক বন্ধ").count() == 1
