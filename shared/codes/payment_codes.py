"""
Checkout/payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    TIMEOUT = 60003
    WEBHOOK_PAYLOAD_INVALID = 60005

    # Checkout/order errors (7xxxx)
    CHECKOUT_VALIDATION = 70000
    ORDER_NOT_FOUND = 70001
    ORDER_TRANSITION_INVALID = 70002
    ORDER_STORE_ERROR = 70003
    CATALOG_ITEM_NOT_FOUND = 70004
    SESSION_NOT_FOUND = 70005
    SESSION_STATE_CONFLICT = 70006
    NOTIFICATION_FAILED = 70007


# Provider charge status -> internal charge status
PROVIDER_STATUS_TO_INTERNAL = {
    "openpix": {
        "ACTIVE": "ACTIVE",
        "COMPLETED": "COMPLETED",
        "EXPIRED": "EXPIRED",
    },
}
