from typing import Optional
from pydantic import BaseModel

from agrohaat.schemas.bid import BidResponse


class SweepSummaryResponse(BaseModel):
    """Result of one deadline sweep"""
    abandoned_bids: int
    suspended_users: int
    failed_bids: int
    abandoned_bid_ids: list[str]
    suspended_user_ids: list[str]


class AuctionResultResponse(BaseModel):
    product_id: str
    winner_user_id: Optional[str]
    winning_amount: Optional[float]
    rejected_bids: int


class AuctionProcessingResponse(BaseModel):
    processed_auctions: int
    auctions: list[AuctionResultResponse]


class ExpiredBidResponse(BaseModel):
    """Accepted bid past its deadline that has not been swept yet"""
    bid: BidResponse
    product_title: str
    hours_overdue: float


class BidStatisticsResponse(BaseModel):
    """Bid counts per status"""
    pending: int
    accepted: int
    rejected: int
    confirmed: int
    completed: int
    abandoned: int
    withdrawn: int
    total: int
