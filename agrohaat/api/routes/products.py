from fastapi import APIRouter, Depends, HTTPException, status, Query
from uuid import UUID
from typing import Optional

from agrohaat.models.product import Product
from agrohaat.models.profile import Profile
from agrohaat.enums.user_role import UserRole
from agrohaat.api.dependencies import get_current_user, seller_required, bidding_http_error
from agrohaat.schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductListResponse,
    ProductBidsResponse,
)
from agrohaat.services.bidding.bid_service import bid_service
from agrohaat.services.bidding.exceptions import BiddingError
from agrohaat.services.catalog.product_service import ProductService

router = APIRouter()


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    current_user: Profile = Depends(seller_required)
):
    """List a new product"""
    try:
        return await ProductService.create_product(current_user, **product_data.model_dump())
    except BiddingError as e:
        raise bidding_http_error(e)


@router.get("/", response_model=ProductListResponse)
async def get_products(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    seller_id: Optional[UUID] = None,
    open_only: bool = Query(False),
):
    """Browse products"""
    products, total = await ProductService.get_products(
        page=page,
        page_size=page_size,
        category=category,
        seller_id=seller_id,
        open_only=open_only
    )

    return ProductListResponse(total=total, page=page, page_size=page_size, products=products)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: UUID):
    """Get product by ID"""
    product = await Product.get_or_none(id=product_id)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )

    return product


@router.get("/{product_id}/bids", response_model=ProductBidsResponse)
async def get_product_bids(
    product_id: UUID,
    current_user: Profile = Depends(get_current_user)
):
    """All bids on a product, highest first (seller or admin only)"""
    product = await Product.get_or_none(id=product_id)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )

    if current_user.role != UserRole.admin and product.seller_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the seller can see bids on this product"
        )

    bids = await bid_service.get_product_bids(product_id)
    return ProductBidsResponse(product_id=product_id, bids=bids)
