from fastapi import APIRouter, Depends, Query, status
from uuid import UUID
from typing import Optional

from agrohaat.models.profile import Profile
from agrohaat.enums.bid_status import BidStatus
from agrohaat.api.dependencies import (
    get_current_user,
    buyer_required,
    seller_required,
    bidding_http_error,
)
from agrohaat.schemas.bid import BidCreate, BidResponse, BidListResponse
from agrohaat.services.bidding.bid_service import bid_service
from agrohaat.services.bidding.exceptions import BiddingError

router = APIRouter()


@router.post("/", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def place_bid(
    bid_data: BidCreate,
    current_user: Profile = Depends(buyer_required)
):
    """Place a bid on a product"""
    try:
        return await bid_service.place_bid(
            product_id=bid_data.product_id,
            buyer=current_user,
            amount=bid_data.amount
        )
    except BiddingError as e:
        raise bidding_http_error(e)


@router.get("/mine", response_model=BidListResponse)
async def get_my_bids(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: Optional[BidStatus] = Query(None, alias="status"),
    current_user: Profile = Depends(buyer_required)
):
    """Bids placed by the current buyer"""
    bids, total = await bid_service.get_buyer_bids(
        buyer_id=current_user.id,
        page=page,
        page_size=page_size,
        status=status_filter
    )

    return BidListResponse(total=total, page=page, page_size=page_size, bids=bids)


@router.get("/received", response_model=BidListResponse)
async def get_received_bids(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: Optional[BidStatus] = Query(None, alias="status"),
    current_user: Profile = Depends(seller_required)
):
    """Bids on the current seller's products"""
    bids, total = await bid_service.get_seller_received_bids(
        seller_id=current_user.id,
        page=page,
        page_size=page_size,
        status=status_filter
    )

    return BidListResponse(total=total, page=page, page_size=page_size, bids=bids)


@router.get("/pending-confirmation", response_model=list[BidResponse])
async def get_pending_confirmations(
    current_user: Profile = Depends(buyer_required)
):
    """Accepted bids the buyer still has to confirm"""
    return await bid_service.get_pending_confirmations(current_user.id)


@router.get("/{bid_id}", response_model=BidResponse)
async def get_bid(
    bid_id: UUID,
    current_user: Profile = Depends(get_current_user)
):
    """Get bid by ID"""
    try:
        return await bid_service.get_bid(bid_id, current_user)
    except BiddingError as e:
        raise bidding_http_error(e)


# Seller transitions
@router.put("/{bid_id}/accept", response_model=BidResponse)
async def accept_bid(
    bid_id: UUID,
    current_user: Profile = Depends(seller_required)
):
    """Accept a pending bid; starts the buyer's confirmation window"""
    try:
        return await bid_service.accept_bid(bid_id, current_user)
    except BiddingError as e:
        raise bidding_http_error(e)


@router.put("/{bid_id}/reject", response_model=BidResponse)
async def reject_bid(
    bid_id: UUID,
    current_user: Profile = Depends(seller_required)
):
    try:
        return await bid_service.reject_bid(bid_id, current_user)
    except BiddingError as e:
        raise bidding_http_error(e)


@router.put("/{bid_id}/complete", response_model=BidResponse)
async def complete_bid(
    bid_id: UUID,
    current_user: Profile = Depends(seller_required)
):
    """Close the deal on a confirmed bid"""
    try:
        return await bid_service.complete_bid(bid_id, current_user)
    except BiddingError as e:
        raise bidding_http_error(e)


# Buyer transitions
@router.put("/{bid_id}/confirm", response_model=BidResponse)
async def confirm_bid(
    bid_id: UUID,
    current_user: Profile = Depends(buyer_required)
):
    """Confirm an accepted bid before its deadline"""
    try:
        return await bid_service.confirm_bid(bid_id, current_user)
    except BiddingError as e:
        raise bidding_http_error(e)


@router.put("/{bid_id}/abandon", response_model=BidResponse)
async def abandon_bid(
    bid_id: UUID,
    current_user: Profile = Depends(buyer_required)
):
    """Walk away from an accepted bid (counts towards suspension)"""
    try:
        return await bid_service.abandon_bid(bid_id, current_user)
    except BiddingError as e:
        raise bidding_http_error(e)


@router.put("/{bid_id}/withdraw", response_model=BidResponse)
async def withdraw_bid(
    bid_id: UUID,
    current_user: Profile = Depends(buyer_required)
):
    """Withdraw a bid while it is still pending"""
    try:
        return await bid_service.withdraw_bid(bid_id, current_user)
    except BiddingError as e:
        raise bidding_http_error(e)
