import uuid
from tortoise import fields, models

from agrohaat.enums.notification_type import NotificationType


class Notification(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField("models.Profile", related_name="notifications")

    # Notification content
    notification_type = fields.CharEnumField(NotificationType)
    title = fields.CharField(max_length=255)
    message = fields.TextField()

    # Delivery
    is_read = fields.BooleanField(default=False)
    read_at = fields.DatetimeField(null=True)

    # e.g. {"bid_id": ..., "product_id": ..., "action": ...}
    metadata = fields.JSONField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "notifications"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Notification {self.id} - {self.title}"
