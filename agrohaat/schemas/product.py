from uuid import UUID
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from agrohaat.schemas.bid import BidResponse


class ProductCreate(BaseModel):
    """Schema for listing a product"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0)
    quantity: Decimal = Field(..., gt=0)
    unit: str = Field(..., max_length=32)
    location: str = Field(..., max_length=255)
    category: str = Field(..., max_length=64)
    images: list[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    bidding_start_time: Optional[datetime] = None
    bidding_deadline: Optional[datetime] = None


class ProductResponse(BaseModel):
    """Schema for product response"""
    id: UUID
    seller_id: UUID
    title: str
    description: Optional[str]
    price: Decimal
    quantity: Decimal
    unit: str
    location: str
    category: str
    images: list[str]
    video_url: Optional[str]
    bidding_start_time: Optional[datetime]
    bidding_deadline: Optional[datetime]
    auction_closed_at: Optional[datetime]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("id", "seller_id")
    def serialize_uuid(self, v: UUID, _info):
        return str(v)

    @field_serializer("price", "quantity")
    def serialize_decimal(self, v: Decimal, _info):
        return float(v)


class ProductListResponse(BaseModel):
    """Schema for paginated product list"""
    total: int
    page: int
    page_size: int
    products: list[ProductResponse]


class ProductBidsResponse(BaseModel):
    product_id: UUID
    bids: list[BidResponse]
