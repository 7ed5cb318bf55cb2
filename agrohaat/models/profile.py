import uuid
from datetime import datetime
from typing import Optional

from tortoise import fields, models

from agrohaat.enums.user_role import UserRole


class Profile(models.Model):
    # Same id as the identity provider's user
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, unique=True)
    role = fields.CharEnumField(UserRole, default=UserRole.buyer)
    phone = fields.CharField(max_length=32, null=True)
    address = fields.TextField(null=True)
    avatar_url = fields.CharField(max_length=512, null=True)
    is_active = fields.BooleanField(default=True)

    # Reputation
    rating = fields.DecimalField(max_digits=3, decimal_places=2, default=0)
    review_count = fields.IntField(default=0)

    # Abandonment tracking
    bid_abandonment_count = fields.IntField(default=0)
    last_abandonment_at = fields.DatetimeField(null=True)
    bid_suspension_until = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "profiles"

    def __str__(self):
        return f"Profile {self.id} - {self.name} ({self.role})"

    def is_suspended(self, now: datetime) -> bool:
        return self.bid_suspension_until is not None and self.bid_suspension_until > now

    def suspension_remaining(self, now: datetime) -> Optional[float]:
        """Seconds left on the current suspension, None if not suspended"""
        if not self.is_suspended(now):
            return None
        return (self.bid_suspension_until - now).total_seconds()
