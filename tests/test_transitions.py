import pytest
from datetime import datetime, timedelta, timezone

from agrohaat.enums.bid_status import BidStatus
from agrohaat.services.bidding.exceptions import InvalidTransitionError, ConfirmationExpiredError
from agrohaat.services.bidding.transitions import (
    Party,
    TERMINAL_STATES,
    can_transition,
    can_force,
    validate_transition,
    confirmation_deadline_for,
    is_confirmation_expired,
    ensure_confirmable,
    is_sweepable,
)

NOW = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("source,target", [
    (BidStatus.pending, BidStatus.accepted),
    (BidStatus.pending, BidStatus.rejected),
    (BidStatus.pending, BidStatus.withdrawn),
    (BidStatus.accepted, BidStatus.confirmed),
    (BidStatus.accepted, BidStatus.abandoned),
    (BidStatus.confirmed, BidStatus.completed),
])
def test_allowed_edges(source, target):
    assert can_transition(source, target)


def test_terminal_states_have_no_exits():
    """Test that nothing leaves a terminal state"""
    for source in TERMINAL_STATES:
        for target in BidStatus:
            assert not can_transition(source, target)


def test_withdraw_accepted_bid_is_invalid():
    with pytest.raises(InvalidTransitionError) as exc_info:
        validate_transition(BidStatus.accepted, BidStatus.withdrawn, Party.buyer)

    assert exc_info.value.detail["current_status"] == "accepted"


def test_buyer_cannot_accept():
    """Test that the edge is guarded by party"""
    with pytest.raises(InvalidTransitionError):
        validate_transition(BidStatus.pending, BidStatus.accepted, Party.buyer)


def test_system_may_abandon_accepted_bid():
    validate_transition(BidStatus.accepted, BidStatus.abandoned, Party.system)


def test_confirmation_deadline_is_six_hours():
    assert confirmation_deadline_for(NOW) == NOW + timedelta(hours=6)


def test_confirmation_expired_boundaries():
    deadline = NOW + timedelta(hours=6)

    assert not is_confirmation_expired(deadline, deadline)
    assert is_confirmation_expired(deadline, deadline + timedelta(seconds=1))
    assert is_confirmation_expired(None, NOW)


def test_ensure_confirmable_after_deadline():
    with pytest.raises(ConfirmationExpiredError):
        ensure_confirmable(BidStatus.accepted, NOW - timedelta(minutes=1), NOW)


def test_ensure_confirmable_wrong_status():
    with pytest.raises(InvalidTransitionError):
        ensure_confirmable(BidStatus.pending, NOW + timedelta(hours=1), NOW)


def test_is_sweepable():
    past = NOW - timedelta(seconds=1)

    assert is_sweepable(BidStatus.accepted, past, NOW)
    assert not is_sweepable(BidStatus.accepted, NOW, NOW)
    assert not is_sweepable(BidStatus.accepted, None, NOW)
    assert not is_sweepable(BidStatus.confirmed, past, NOW)


@pytest.mark.parametrize("source,target,allowed", [
    (BidStatus.pending, BidStatus.accepted, True),
    (BidStatus.pending, BidStatus.confirmed, True),
    (BidStatus.accepted, BidStatus.confirmed, True),
    (BidStatus.confirmed, BidStatus.rejected, True),
    (BidStatus.accepted, BidStatus.abandoned, True),
    (BidStatus.accepted, BidStatus.pending, False),
    (BidStatus.confirmed, BidStatus.pending, False),
    (BidStatus.confirmed, BidStatus.accepted, False),
    (BidStatus.pending, BidStatus.pending, False),
    (BidStatus.abandoned, BidStatus.completed, False),
])
def test_admin_override_moves_forward_only(source, target, allowed):
    assert can_force(source, target) is allowed
