from enum import Enum


class PenaltyType(str, Enum):
    deal_refusal = "deal_refusal"
    fake_listing = "fake_listing"
    quality_issue = "quality_issue"
