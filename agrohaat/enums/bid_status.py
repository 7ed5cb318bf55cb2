from enum import Enum


class BidStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    confirmed = "confirmed"
    completed = "completed"
    abandoned = "abandoned"
    withdrawn = "withdrawn"
