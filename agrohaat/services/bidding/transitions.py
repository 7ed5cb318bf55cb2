"""
Bid state graph.

    pending   -> accepted | rejected | withdrawn
    accepted  -> confirmed | abandoned
    confirmed -> completed

rejected, completed, abandoned and withdrawn are terminal. Everything in this
module is a pure function of (status, acting role, timestamps).
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Set, Tuple

from agrohaat.core.config import settings
from agrohaat.enums.bid_status import BidStatus
from agrohaat.services.bidding.exceptions import (
    InvalidTransitionError,
    ConfirmationExpiredError,
)


class Party(str, Enum):
    buyer = "buyer"
    seller = "seller"
    system = "system"


TERMINAL_STATES: Set[BidStatus] = {
    BidStatus.rejected,
    BidStatus.completed,
    BidStatus.abandoned,
    BidStatus.withdrawn,
}

ALLOWED_TRANSITIONS: Dict[BidStatus, Set[BidStatus]] = {
    BidStatus.pending: {BidStatus.accepted, BidStatus.rejected, BidStatus.withdrawn},
    BidStatus.accepted: {BidStatus.confirmed, BidStatus.abandoned},
    BidStatus.confirmed: {BidStatus.completed},
    BidStatus.rejected: set(),
    BidStatus.completed: set(),
    BidStatus.abandoned: set(),
    BidStatus.withdrawn: set(),
}

# Which party may drive each edge. accepted -> abandoned is shared between the
# buyer (voluntary) and the deadline sweeper (forced).
EDGE_PARTIES: Dict[Tuple[BidStatus, BidStatus], Set[Party]] = {
    (BidStatus.pending, BidStatus.accepted): {Party.seller, Party.system},
    (BidStatus.pending, BidStatus.rejected): {Party.seller, Party.system},
    (BidStatus.pending, BidStatus.withdrawn): {Party.buyer},
    (BidStatus.accepted, BidStatus.confirmed): {Party.buyer},
    (BidStatus.accepted, BidStatus.abandoned): {Party.buyer, Party.system},
    (BidStatus.confirmed, BidStatus.completed): {Party.seller},
}

# Position along the happy path. Admin overrides may only move a bid forward
# on it or into a terminal state, never back towards acceptance.
LIFECYCLE_STAGE: Dict[BidStatus, int] = {
    BidStatus.pending: 0,
    BidStatus.accepted: 1,
    BidStatus.confirmed: 2,
    BidStatus.completed: 3,
}

STATUS_LABELS_BN: Dict[BidStatus, str] = {
    BidStatus.pending: "অপেক্ষমান",
    BidStatus.accepted: "গৃহীত",
    BidStatus.rejected: "প্রত্যাখ্যাত",
    BidStatus.confirmed: "নিশ্চিত",
    BidStatus.completed: "সম্পন্ন",
    BidStatus.abandoned: "পরিত্যক্ত",
    BidStatus.withdrawn: "প্রত্যাহার করা",
}


def is_terminal(status: BidStatus) -> bool:
    return status in TERMINAL_STATES


def can_transition(source: BidStatus, target: BidStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(source, set())


def validate_transition(source: BidStatus, target: BidStatus, party: Optional[Party] = None) -> None:
    if not can_transition(source, target):
        raise InvalidTransitionError(
            f"বিডের অবস্থা '{STATUS_LABELS_BN[source]}' থেকে '{STATUS_LABELS_BN[target]}' করা যাবে না। "
            f"Invalid transition: {source.value} -> {target.value}",
            {"current_status": source.value, "requested_status": target.value},
        )
    if party is not None and party not in EDGE_PARTIES[(source, target)]:
        raise InvalidTransitionError(
            f"এই পরিবর্তন করার অনুমতি আপনার নেই। "
            f"{party.value} may not move a bid from {source.value} to {target.value}",
            {"current_status": source.value, "requested_status": target.value},
        )


def can_force(source: BidStatus, target: BidStatus) -> bool:
    if is_terminal(source) or source == target:
        return False
    if is_terminal(target):
        return True
    return LIFECYCLE_STAGE[target] > LIFECYCLE_STAGE[source]


def confirmation_deadline_for(accepted_at: datetime) -> datetime:
    return accepted_at + timedelta(hours=settings.CONFIRMATION_WINDOW_HOURS)


def is_confirmation_expired(deadline: Optional[datetime], now: datetime) -> bool:
    # An accepted bid without a deadline cannot be confirmed either
    return deadline is None or now > deadline


def ensure_confirmable(status: BidStatus, deadline: Optional[datetime], now: datetime) -> None:
    validate_transition(status, BidStatus.confirmed, Party.buyer)
    if is_confirmation_expired(deadline, now):
        raise ConfirmationExpiredError(
            "নিশ্চিতকরণের সময়সীমা শেষ হয়ে গেছে। Confirmation deadline has passed",
            {"confirmation_deadline": deadline.isoformat() if deadline else None},
        )


def is_sweepable(status: BidStatus, deadline: Optional[datetime], now: datetime) -> bool:
    return status == BidStatus.accepted and deadline is not None and deadline < now
