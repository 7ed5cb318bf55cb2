from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from agrohaat.models.profile import Profile
from agrohaat.api.dependencies import get_current_user
from agrohaat.schemas.profile import ProfileUpdate, ProfileResponse, BiddingEligibilityResponse
from agrohaat.services.bidding.bid_service import bid_service

router = APIRouter()


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: Profile = Depends(get_current_user)
):
    """Get current user's profile"""
    return current_user


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_update: ProfileUpdate,
    current_user: Profile = Depends(get_current_user)
):
    """Update current user's contact details"""
    update_data = profile_update.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        setattr(current_user, field, value)

    await current_user.save(update_fields=list(update_data.keys()) + ["updated_at"])
    return current_user


@router.get("/me/bidding-eligibility", response_model=BiddingEligibilityResponse)
async def get_bidding_eligibility(
    current_user: Profile = Depends(get_current_user)
):
    """Whether the current user may place bids right now"""
    now = datetime.now(timezone.utc)
    can_bid = await bid_service.can_user_bid(current_user, now)

    return BiddingEligibilityResponse(
        can_bid=can_bid,
        bid_suspension_until=current_user.bid_suspension_until if current_user.is_suspended(now) else None,
        suspension_remaining_seconds=current_user.suspension_remaining(now),
        bid_abandonment_count=current_user.bid_abandonment_count
    )
