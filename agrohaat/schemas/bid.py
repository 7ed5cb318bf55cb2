from uuid import UUID
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from agrohaat.enums.bid_status import BidStatus


class BidCreate(BaseModel):
    """Schema for placing a bid"""
    product_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Bid amount in BDT, must be positive")


class BidStatusOverride(BaseModel):
    """Schema for an admin forcing a bid status"""
    status: BidStatus
    reason: Optional[str] = Field(None, max_length=500)


class BidResponse(BaseModel):
    """Schema for bid response"""
    id: UUID
    product_id: UUID
    buyer_id: UUID
    amount: Decimal
    status: BidStatus
    confirmation_deadline: Optional[datetime]
    confirmed_at: Optional[datetime]
    abandoned_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("id", "product_id", "buyer_id")
    def serialize_uuid(self, v: UUID, _info):
        return str(v)

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)


class BidListResponse(BaseModel):
    """Schema for paginated bid list"""
    total: int
    page: int
    page_size: int
    bids: list[BidResponse]
