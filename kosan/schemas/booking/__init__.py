"""
Booking schemas package.

This module exports all booking-related schemas for easy importing
across the client.
"""

from kosan.schemas.booking.booking_base import (
    BookingCreate,
    BookingRecord,
    RoomSnapshot,
)
from kosan.schemas.booking.booking_extension import (
    ExtensionPreview,
    ExtensionRequest,
)
from kosan.schemas.booking.booking_response import (
    BookingPreview,
    BookingSummary,
    BookingView,
    GuardDecision,
)

__all__ = [
    "BookingCreate",
    "BookingRecord",
    "RoomSnapshot",
    "ExtensionPreview",
    "ExtensionRequest",
    "BookingPreview",
    "BookingSummary",
    "BookingView",
    "GuardDecision",
]
