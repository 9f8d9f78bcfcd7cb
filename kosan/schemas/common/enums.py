"""
All enumeration types used across the client.

Values are the canonical vocabulary of the client. Backend spellings are
translated onto these in ``kosan.schemas.common.status_map``.
"""

from enum import Enum

__all__ = [
    "BookingStatus",
    "PaymentStatus",
    "PaymentMethod",
    "PaymentType",
    "ReminderStatus",
    "ExtensionState",
    "CancellationState",
    "ACTIVE_BOOKING_STATUSES",
    "ACTIONABLE_PAYMENT_STATUSES",
]


class BookingStatus(str, Enum):
    """Booking status enumeration."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""

    TRANSFER = "transfer"
    CASH = "cash"
    GATEWAY = "gateway"


class PaymentType(str, Enum):
    """Payment type enumeration."""

    INITIAL = "initial"
    EXTEND = "extend"
    DP = "dp"


class ReminderStatus(str, Enum):
    """Payment reminder status enumeration."""

    PENDING = "Pending"
    SENT = "Sent"
    PAID = "Paid"


class ExtensionState(str, Enum):
    """States of one extension attempt."""

    IDLE = "idle"
    DURATION_SELECTED = "duration_selected"
    PROOF_REQUIRED = "proof_required"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class CancellationState(str, Enum):
    """States of one cancellation attempt."""

    IDLE = "idle"
    CONFIRM_PENDING = "confirm_pending"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


# Non-terminal bookings; a tenant may hold at most one.
ACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

ACTIONABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.REJECTED})
