from enum import Enum


class NotificationType(str, Enum):
    bid = "bid"
    message = "message"
    order = "order"
    delivery = "delivery"
    system = "system"
