from enum import Enum


class PenaltyStatus(str, Enum):
    active = "active"
    paid = "paid"
    waived = "waived"
