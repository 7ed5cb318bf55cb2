import uuid

from tortoise import fields, models

from agrohaat.enums.bid_status import BidStatus


class Bid(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)

    product = fields.ForeignKeyField("models.Product", related_name="bids", on_delete=fields.CASCADE)
    buyer = fields.ForeignKeyField("models.Profile", related_name="bids", on_delete=fields.CASCADE)

    amount = fields.DecimalField(max_digits=12, decimal_places=2)
    status = fields.CharEnumField(BidStatus, default=BidStatus.pending)

    # Lifecycle timestamps
    confirmation_deadline = fields.DatetimeField(null=True)
    confirmed_at = fields.DatetimeField(null=True)
    abandoned_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "bids"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Bid {self.id} - {self.amount} ({self.status})"

    async def save(self, *args, **kwargs):
        if self.amount <= 0:
            raise ValueError("Amount must be greater than 0")
        await super().save(*args, **kwargs)
