from uuid import UUID
from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from tortoise.expressions import Q

from agrohaat.enums.change_event import ChangeEvent
from agrohaat.enums.user_role import UserRole
from agrohaat.models.product import Product
from agrohaat.models.profile import Profile
from agrohaat.services.bidding.exceptions import BidValidationError, RoleNotAllowedError
from agrohaat.services.realtime.change_feed import change_feed


class ProductService:
    @staticmethod
    async def create_product(seller: Profile, **data) -> Product:
        """Create a listing; the bidding window has to make sense"""
        if seller.role != UserRole.seller:
            raise RoleNotAllowedError("শুধুমাত্র বিক্রেতারা পণ্য যোগ করতে পারবেন। Only sellers can list products")

        start = data.get("bidding_start_time")
        deadline = data.get("bidding_deadline")
        if start is not None and deadline is not None and deadline <= start:
            raise BidValidationError(
                "বিডিং শেষের সময় শুরুর সময়ের পরে হতে হবে। Bidding deadline must be after the start time"
            )

        product = await Product.create(seller=seller, **data)
        logger.info(f"Product {product.id} listed by seller {seller.id}")
        await change_feed.publish_instance(product, ChangeEvent.insert)
        return product

    @staticmethod
    async def get_products(
        page: int = 1,
        page_size: int = 20,
        category: Optional[str] = None,
        seller_id: Optional[UUID] = None,
        open_only: bool = False,
        now: Optional[datetime] = None
    ) -> tuple[list[Product], int]:
        """List products with pagination"""
        query = Product.all()

        if category:
            query = query.filter(category=category)

        if seller_id:
            query = query.filter(seller_id=seller_id)

        if open_only:
            now = now or datetime.now(timezone.utc)
            query = query.filter(
                Q(bidding_deadline__isnull=True) | Q(bidding_deadline__gt=now),
                Q(bidding_start_time__isnull=True) | Q(bidding_start_time__lte=now),
                auction_closed_at__isnull=True,
            )

        total = await query.count()
        products = await query.order_by("-created_at").offset((page - 1) * page_size).limit(page_size)

        return products, total
