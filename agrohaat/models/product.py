import uuid
from datetime import datetime

from tortoise import fields, models


class Product(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    seller = fields.ForeignKeyField("models.Profile", related_name="products", on_delete=fields.CASCADE)

    title = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    quantity = fields.DecimalField(max_digits=12, decimal_places=2)
    unit = fields.CharField(max_length=32)
    location = fields.CharField(max_length=255)
    category = fields.CharField(max_length=64)

    # Media lives in object storage, only URLs are kept here
    images = fields.JSONField(default=list)
    video_url = fields.CharField(max_length=512, null=True)

    # Bidding window
    bidding_start_time = fields.DatetimeField(null=True)
    bidding_deadline = fields.DatetimeField(null=True)
    auction_closed_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "products"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Product {self.id} - {self.title}"

    def is_bidding_open(self, now: datetime) -> bool:
        if self.bidding_start_time is not None and now < self.bidding_start_time:
            return False
        if self.bidding_deadline is not None and now >= self.bidding_deadline:
            return False
        return True
