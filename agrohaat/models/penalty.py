import uuid

from tortoise import fields, models

from agrohaat.enums.penalty_type import PenaltyType
from agrohaat.enums.penalty_status import PenaltyStatus


class Penalty(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)

    user = fields.ForeignKeyField("models.Profile", related_name="penalties")
    bid = fields.ForeignKeyField("models.Bid", related_name="penalties")
    product = fields.ForeignKeyField("models.Product", related_name="penalties")
    applied_by = fields.ForeignKeyField("models.Profile", related_name="applied_penalties", null=True)

    penalty_type = fields.CharEnumField(PenaltyType)
    # Zero means a warning only
    penalty_amount = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    description = fields.TextField(null=True)
    status = fields.CharEnumField(PenaltyStatus, default=PenaltyStatus.active)

    applied_at = fields.DatetimeField(auto_now_add=True)
    resolved_at = fields.DatetimeField(null=True)

    class Meta:
        table = "penalties"
        ordering = ["-applied_at"]

    def __str__(self):
        return f"Penalty {self.id} - {self.penalty_type} ({self.status})"
