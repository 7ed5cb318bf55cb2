from uuid import UUID
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from agrohaat.enums.penalty_type import PenaltyType
from agrohaat.enums.penalty_status import PenaltyStatus


class PenaltyCreate(BaseModel):
    """Schema for applying a penalty (admin only)"""
    user_id: UUID
    bid_id: UUID
    product_id: UUID
    penalty_type: PenaltyType
    penalty_amount: Decimal = Field(Decimal("0"), ge=0, description="Zero means warning only")
    description: Optional[str] = None


class PenaltyResolve(BaseModel):
    """paid or waived"""
    status: PenaltyStatus


class PenaltyResponse(BaseModel):
    """Schema for penalty response"""
    id: UUID
    user_id: UUID
    bid_id: UUID
    product_id: UUID
    applied_by_id: Optional[UUID]
    penalty_type: PenaltyType
    penalty_amount: Decimal
    description: Optional[str]
    status: PenaltyStatus
    applied_at: datetime
    resolved_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("id", "user_id", "bid_id", "product_id")
    def serialize_uuid(self, v: UUID, _info):
        return str(v)

    @field_serializer("penalty_amount")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)


class PenaltyListResponse(BaseModel):
    """Schema for paginated penalty list"""
    total: int
    page: int
    page_size: int
    penalties: list[PenaltyResponse]
