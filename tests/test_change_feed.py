import pytest

from agrohaat.enums.bid_status import BidStatus
from agrohaat.enums.change_event import ChangeEvent
from agrohaat.services.bidding.bid_service import bid_service
from agrohaat.services.realtime.change_feed import ChangeFeed, change_feed


@pytest.mark.asyncio
async def test_subscribe_filters_rows():
    feed = ChangeFeed()
    received = []
    feed.subscribe("bids", {"product_id": "p1"}, received.append)

    await feed.publish("bids", ChangeEvent.insert, {"id": "b1", "product_id": "p1"})
    await feed.publish("bids", ChangeEvent.insert, {"id": "b2", "product_id": "p2"})
    await feed.publish("notifications", ChangeEvent.insert, {"id": "n1", "product_id": "p1"})

    assert [message.new["id"] for message in received] == ["b1"]
    assert received[0].event == ChangeEvent.insert


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    received = []
    subscription = feed.subscribe("bids", None, received.append)

    subscription.unsubscribe()
    await feed.publish("bids", ChangeEvent.update, {"id": "b1"})

    assert received == []
    assert feed.subscriber_count() == 0


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_publish():
    feed = ChangeFeed()
    received = []

    async def broken(message):
        raise RuntimeError("socket closed")

    feed.subscribe("bids", None, broken)
    feed.subscribe("bids", None, received.append)

    await feed.publish("bids", ChangeEvent.update, {"id": "b1"})

    assert len(received) == 1


@pytest.mark.asyncio
async def test_bid_transitions_are_published(test_buyer, test_seller, test_product, make_bid):
    """Test that watchers of a product see its bid updates"""
    received = []
    subscription = change_feed.subscribe("bids", {"product_id": test_product.id}, received.append)
    try:
        bid = await make_bid(test_product, test_buyer)
        await bid_service.accept_bid(bid.id, test_seller)
    finally:
        subscription.unsubscribe()

    assert len(received) == 1
    message = received[0]
    assert message.event == ChangeEvent.update
    assert message.new["status"] == BidStatus.accepted.value
    assert message.old["status"] == BidStatus.pending.value
