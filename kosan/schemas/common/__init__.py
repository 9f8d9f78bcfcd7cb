"""
Common schemas shared by the booking and payment packages.
"""

from kosan.schemas.common.base import BaseSchema, WireRecordSchema, pick
from kosan.schemas.common.enums import (
    ACTIONABLE_PAYMENT_STATUSES,
    ACTIVE_BOOKING_STATUSES,
    BookingStatus,
    CancellationState,
    ExtensionState,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    ReminderStatus,
)
from kosan.schemas.common.response import ApiEnvelope

__all__ = [
    "BaseSchema",
    "WireRecordSchema",
    "pick",
    "ACTIONABLE_PAYMENT_STATUSES",
    "ACTIVE_BOOKING_STATUSES",
    "BookingStatus",
    "CancellationState",
    "ExtensionState",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentType",
    "ReminderStatus",
    "ApiEnvelope",
]
