from fastapi import APIRouter, Depends, HTTPException, status, Query
from uuid import UUID
from typing import Optional
from loguru import logger

from agrohaat.core.config import settings
from agrohaat.enums.penalty_status import PenaltyStatus
from agrohaat.models.profile import Profile
from agrohaat.api.dependencies import admin_required, bidding_http_error
from agrohaat.schemas.bid import BidStatusOverride, BidResponse
from agrohaat.schemas.penalty import PenaltyCreate, PenaltyResolve, PenaltyResponse, PenaltyListResponse
from agrohaat.schemas.sweep import (
    SweepSummaryResponse,
    AuctionProcessingResponse,
    ExpiredBidResponse,
    BidStatisticsResponse,
)
from agrohaat.services.bidding.bid_service import bid_service
from agrohaat.services.bidding.sweeper import deadline_sweeper
from agrohaat.services.bidding.auction_resolver import auction_resolver
from agrohaat.services.bidding.exceptions import BiddingError
from agrohaat.services.moderation.penalty_service import PenaltyService

router = APIRouter()


@router.post("/bids/sweep", response_model=SweepSummaryResponse)
async def sweep_expired_bids(
    current_user: Profile = Depends(admin_required)
):
    """Run the confirmation deadline sweep now"""
    logger.info(f"Admin {current_user.id} triggered a deadline sweep")
    summary = await deadline_sweeper.run()
    return summary.to_dict()


@router.get("/bids/expired", response_model=list[ExpiredBidResponse])
async def get_expired_bids(
    current_user: Profile = Depends(admin_required)
):
    """Accepted bids past their confirmation deadline, most overdue first"""
    expired = await bid_service.get_expired_bids()

    return [
        ExpiredBidResponse(
            bid=BidResponse.model_validate(bid),
            product_title=bid.product.title,
            hours_overdue=hours_overdue
        )
        for bid, hours_overdue in expired
    ]


@router.get("/bids/statistics", response_model=BidStatisticsResponse)
async def get_bid_statistics(
    current_user: Profile = Depends(admin_required)
):
    """Bid counts per status"""
    return await bid_service.get_bid_statistics()


@router.post("/auctions/process", response_model=AuctionProcessingResponse)
async def process_expired_auctions(
    current_user: Profile = Depends(admin_required)
):
    """Close products whose bidding window has ended"""
    if not settings.AUCTION_AUTO_RESOLVE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Auction auto resolution is disabled"
        )

    results = await auction_resolver.process_expired_auctions()
    return AuctionProcessingResponse(
        processed_auctions=len(results),
        auctions=[result.to_dict() for result in results]
    )


@router.put("/bids/{bid_id}/status", response_model=BidResponse)
async def force_bid_status(
    bid_id: UUID,
    override: BidStatusOverride,
    current_user: Profile = Depends(admin_required)
):
    """Override a bid's status (audited)"""
    try:
        return await bid_service.force_status(
            bid_id=bid_id,
            admin=current_user,
            status=override.status,
            reason=override.reason
        )
    except BiddingError as e:
        raise bidding_http_error(e)


# Penalties
@router.post("/penalties", response_model=PenaltyResponse, status_code=status.HTTP_201_CREATED)
async def apply_penalty(
    penalty_data: PenaltyCreate,
    current_user: Profile = Depends(admin_required)
):
    try:
        return await PenaltyService.apply_penalty(current_user, **penalty_data.model_dump())
    except BiddingError as e:
        raise bidding_http_error(e)


@router.get("/penalties", response_model=PenaltyListResponse)
async def get_penalties(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: Optional[PenaltyStatus] = Query(None, alias="status"),
    user_id: Optional[UUID] = None,
    current_user: Profile = Depends(admin_required)
):
    """All penalties, newest first"""
    penalties, total = await PenaltyService.get_penalties(
        page=page,
        page_size=page_size,
        status=status_filter,
        user_id=user_id
    )

    return PenaltyListResponse(total=total, page=page, page_size=page_size, penalties=penalties)


@router.put("/penalties/{penalty_id}/resolve", response_model=PenaltyResponse)
async def resolve_penalty(
    penalty_id: UUID,
    resolution: PenaltyResolve,
    current_user: Profile = Depends(admin_required)
):
    """Mark a penalty as paid or waived"""
    try:
        return await PenaltyService.resolve_penalty(current_user, penalty_id, resolution.status)
    except BiddingError as e:
        raise bidding_http_error(e)
