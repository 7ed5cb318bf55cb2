from datetime import datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Optional

from agrohaat.enums.user_role import UserRole


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None
    rating: Decimal
    review_count: int
    bid_abandonment_count: int
    bid_suspension_until: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("rating")
    def serialize_rating(self, v: Decimal, _info):
        return float(v)


class BiddingEligibilityResponse(BaseModel):
    can_bid: bool
    bid_suspension_until: Optional[datetime] = None
    suspension_remaining_seconds: Optional[float] = None
    bid_abandonment_count: int
