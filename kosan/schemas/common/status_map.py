"""
Lookup tables from backend vocabulary to client enums.

This is the only place backend status strings are interpreted. Every table
is exhaustive: a value missing from it raises ``UnknownStatusError`` rather
than falling back to a default, so a new backend state (or a typo) shows up
as an error instead of being displayed as, say, a completed booking.
"""

from typing import Any, Dict, Mapping, Optional, TypeVar

from kosan.core.exceptions import UnknownStatusError
from kosan.schemas.common.enums import (
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    ReminderStatus,
)

__all__ = [
    "BOOKING_STATUS_TABLE",
    "PAYMENT_STATUS_TABLE",
    "PAYMENT_METHOD_TABLE",
    "PAYMENT_TYPE_TABLE",
    "REMINDER_STATUS_TABLE",
    "resolve_booking_status",
    "resolve_payment_status",
    "resolve_payment_method",
    "resolve_payment_type",
    "resolve_reminder_status",
    "to_wire_payment_method",
    "to_wire_payment_type",
]

E = TypeVar("E")

# Keys are compared case-insensitively after trimming.
BOOKING_STATUS_TABLE: Mapping[str, BookingStatus] = {
    "pending": BookingStatus.PENDING,
    "confirmed": BookingStatus.CONFIRMED,
    "cancelled": BookingStatus.CANCELLED,
    "completed": BookingStatus.COMPLETED,
}

PAYMENT_STATUS_TABLE: Mapping[str, PaymentStatus] = {
    "pending": PaymentStatus.PENDING,
    "confirmed": PaymentStatus.CONFIRMED,
    # gateway settlement
    "settled": PaymentStatus.CONFIRMED,
    "rejected": PaymentStatus.REJECTED,
    # gateway expire/cancel/deny
    "failed": PaymentStatus.REJECTED,
}

PAYMENT_METHOD_TABLE: Mapping[str, PaymentMethod] = {
    "transfer": PaymentMethod.TRANSFER,
    "cash": PaymentMethod.CASH,
    "midtrans": PaymentMethod.GATEWAY,
}

PAYMENT_TYPE_TABLE: Mapping[str, PaymentType] = {
    "full": PaymentType.INITIAL,
    "initial": PaymentType.INITIAL,
    "dp": PaymentType.DP,
    "extend": PaymentType.EXTEND,
}

REMINDER_STATUS_TABLE: Mapping[str, ReminderStatus] = {
    "pending": ReminderStatus.PENDING,
    "sent": ReminderStatus.SENT,
    "paid": ReminderStatus.PAID,
}

_WIRE_PAYMENT_METHODS: Dict[PaymentMethod, str] = {
    PaymentMethod.TRANSFER: "transfer",
    PaymentMethod.CASH: "cash",
    PaymentMethod.GATEWAY: "midtrans",
}

_WIRE_PAYMENT_TYPES: Dict[PaymentType, str] = {
    PaymentType.INITIAL: "full",
    PaymentType.DP: "dp",
    PaymentType.EXTEND: "extend",
}


def _resolve(table: Mapping[str, E], field: str, raw: Any) -> E:
    if isinstance(raw, str):
        resolved = table.get(raw.strip().lower())
        if resolved is not None:
            return resolved
    raise UnknownStatusError(field, raw)


def _resolve_optional(table: Mapping[str, E], field: str, raw: Any) -> Optional[E]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return _resolve(table, field, raw)


def resolve_booking_status(raw: Any) -> BookingStatus:
    return _resolve(BOOKING_STATUS_TABLE, "status_pemesanan", raw)


def resolve_payment_status(raw: Any) -> PaymentStatus:
    return _resolve(PAYMENT_STATUS_TABLE, "status_pembayaran", raw)


def resolve_payment_method(raw: Any) -> Optional[PaymentMethod]:
    """Absent methods stay ``None``; unrecognised ones raise."""
    return _resolve_optional(PAYMENT_METHOD_TABLE, "metode_pembayaran", raw)


def resolve_payment_type(raw: Any) -> Optional[PaymentType]:
    return _resolve_optional(PAYMENT_TYPE_TABLE, "tipe_pembayaran", raw)


def resolve_reminder_status(raw: Any) -> ReminderStatus:
    return _resolve(REMINDER_STATUS_TABLE, "status_reminder", raw)


def to_wire_payment_method(method: PaymentMethod) -> str:
    return _WIRE_PAYMENT_METHODS[method]


def to_wire_payment_type(payment_type: PaymentType) -> str:
    return _WIRE_PAYMENT_TYPES[payment_type]
