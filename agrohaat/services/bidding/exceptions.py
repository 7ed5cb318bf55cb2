"""
Errors raised by the bid lifecycle.

Every error carries a machine readable ``code`` and a message meant to be
shown to the acting user (Bengali first, English after). None of them are
retried automatically: the caller has to resubmit a corrected request.
"""
from typing import Optional


class BiddingError(Exception):
    code = "bidding_error"

    def __init__(self, message: str, detail: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.detail}


class BidValidationError(BiddingError):
    """Malformed input, rejected before touching the database"""
    code = "validation_error"


class BidNotFoundError(BiddingError):
    code = "not_found"


class NotOwnerError(BiddingError):
    """Acting user is not the party allowed to trigger this transition"""
    code = "not_owner"


class RoleNotAllowedError(BiddingError):
    code = "role_not_allowed"


class InvalidTransitionError(BiddingError):
    """Requested edge does not exist in the bid state graph"""
    code = "invalid_transition"


class StaleBidStateError(BiddingError):
    """Row changed between read and conditional update"""
    code = "stale_state"


class ConfirmationExpiredError(BiddingError):
    code = "confirmation_expired"


class BiddingSuspendedError(BiddingError):
    code = "bidding_suspended"


class BiddingWindowClosedError(BiddingError):
    code = "bidding_window_closed"
