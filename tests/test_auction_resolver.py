import pytest
from datetime import timedelta
from decimal import Decimal

from agrohaat.enums.bid_status import BidStatus
from agrohaat.models.notification import Notification
from agrohaat.models.product import Product
from agrohaat.services.bidding.auction_resolver import auction_resolver


@pytest.fixture
async def closed_product(test_seller, now) -> Product:
    """Product whose bidding window ended an hour ago"""
    return await Product.create(
        seller=test_seller,
        title="পেঁয়াজ (Onion)",
        price=Decimal("800"),
        quantity=Decimal("100"),
        unit="kg",
        location="Pabna",
        category="vegetables",
        bidding_start_time=now - timedelta(days=3),
        bidding_deadline=now - timedelta(hours=1)
    )


@pytest.mark.asyncio
async def test_highest_bid_wins(closed_product, test_buyer, other_buyer, make_bid, now):
    """Test that the highest pending bid is accepted and the rest rejected"""
    loser = await make_bid(closed_product, test_buyer, amount="950.00")
    winner = await make_bid(closed_product, other_buyer, amount="1150.00")

    results = await auction_resolver.process_expired_auctions(now)

    assert len(results) == 1
    result = results[0]
    assert result.product_id == closed_product.id
    assert result.winner_user_id == other_buyer.id
    assert result.winning_amount == Decimal("1150.00")
    assert result.rejected_bids == 1

    await winner.refresh_from_db()
    await loser.refresh_from_db()
    assert winner.status == BidStatus.accepted
    assert winner.confirmation_deadline == now + timedelta(hours=6)
    assert loser.status == BidStatus.rejected

    won = await Notification.get(user_id=other_buyer.id)
    assert won.metadata["action"] == "auction_won"
    lost = await Notification.get(user_id=test_buyer.id)
    assert lost.metadata["action"] == "auction_lost"

    await closed_product.refresh_from_db()
    assert closed_product.auction_closed_at == now


@pytest.mark.asyncio
async def test_equal_amounts_earliest_wins(closed_product, test_buyer, other_buyer, make_bid, now):
    first = await make_bid(closed_product, test_buyer, amount="1000.00")
    await make_bid(closed_product, other_buyer, amount="1000.00")

    results = await auction_resolver.process_expired_auctions(now)

    assert results[0].winner_user_id == test_buyer.id
    await first.refresh_from_db()
    assert first.status == BidStatus.accepted


@pytest.mark.asyncio
async def test_product_resolved_once(closed_product, test_buyer, make_bid, now):
    """Test that a second run does not touch an already closed product"""
    await make_bid(closed_product, test_buyer, amount="900.00")

    first = await auction_resolver.process_expired_auctions(now)
    second = await auction_resolver.process_expired_auctions(now + timedelta(minutes=5))

    assert len(first) == 1
    assert second == []
    assert await Notification.filter(user_id=test_buyer.id).count() == 1


@pytest.mark.asyncio
async def test_existing_winner_is_kept(closed_product, test_buyer, other_buyer, make_bid, now):
    """Test that a bid the seller already accepted stays the winner"""
    accepted = await make_bid(closed_product, test_buyer, amount="900.00", status=BidStatus.accepted,
                              confirmation_deadline=now + timedelta(hours=3))
    higher = await make_bid(closed_product, other_buyer, amount="1500.00")

    results = await auction_resolver.process_expired_auctions(now)

    assert results[0].winner_user_id == test_buyer.id
    await accepted.refresh_from_db()
    await higher.refresh_from_db()
    assert accepted.status == BidStatus.accepted
    assert accepted.confirmation_deadline == now + timedelta(hours=3)
    assert higher.status == BidStatus.rejected


@pytest.mark.asyncio
async def test_open_and_unbounded_products_are_skipped(test_product, test_buyer, test_seller, make_bid, now):
    await make_bid(test_product, test_buyer)
    still_open = await Product.create(
        seller=test_seller,
        title="মরিচ (Chili)",
        price=Decimal("300"),
        quantity=Decimal("20"),
        unit="kg",
        location="Bogura",
        category="spices",
        bidding_deadline=now + timedelta(days=1)
    )
    await make_bid(still_open, test_buyer)

    results = await auction_resolver.process_expired_auctions(now)

    assert results == []


@pytest.mark.asyncio
async def test_product_without_bids(closed_product, now):
    results = await auction_resolver.process_expired_auctions(now)

    assert len(results) == 1
    assert results[0].winner_user_id is None
    assert results[0].winning_amount is None
