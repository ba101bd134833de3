"""Constants for vendor sale records."""

from enum import IntEnum


TABLE_NAME = "sales"


class OrderState(IntEnum):
    """Lifecycle stage of an order (stored as its integer code)."""

    PENDING = 0
    AWAITING_PAYMENT = 1
    AWAITING_PICKUP = 2
    AWAITING_FULFILLMENT = 3
    PARTIALLY_FULFILLED = 4
    FULFILLED = 5
    COMPLETED = 6
    CANCELED = 7
    DECLINED = 8
    REFUNDED = 9
    DISPUTED = 10
    DECIDED = 11
    RESOLVED = 12
    PAYMENT_FINALIZED = 13
    PROCESSING_ERROR = 14
