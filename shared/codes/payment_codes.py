"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Refund / capture validation (2xxxx business range)
    INVALID_AMOUNT = 20100
    EXCESSIVE_REFUND = 20101
    NO_TRANSACTION_ID = 20102
    ALREADY_CAPTURED = 20103
    INVALID_ORDER_STATE = 20104
    RECONCILIATION_REQUIRED = 20105
    ORDER_NOT_FOUND = 20106

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    TIMEOUT = 60003
    PROTOCOL_ERROR = 60005
    CAPTURE_FAILED = 60006


# Provider→transaction status mapping (accepted/pending/declined/failed).
# Statuses missing here pass through unchanged and are rejected by the
# state machine as protocol errors.
PROVIDER_STATUS_TO_INTERNAL = {
    "sample": {
        "accepted": "accepted",
        "approved": "accepted",
        "captured": "accepted",
        "pending": "pending",
        "review": "pending",
        "declined": "declined",
        "failed": "failed",
    },
}
