from .bid import BidCreate, BidStatusOverride, BidResponse, BidListResponse
from .product import ProductCreate, ProductResponse, ProductListResponse, ProductBidsResponse
from .penalty import PenaltyCreate, PenaltyResolve, PenaltyResponse, PenaltyListResponse
from .notification import NotificationResponse, NotificationListResponse
from .profile import ProfileUpdate, ProfileResponse, BiddingEligibilityResponse
from .sweep import (
    SweepSummaryResponse,
    AuctionResultResponse,
    AuctionProcessingResponse,
    ExpiredBidResponse,
    BidStatisticsResponse,
)
