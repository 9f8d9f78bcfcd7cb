"""
Single-active-booking guard.

A tenant may hold at most one booking that is Pending or Confirmed. This
check only saves a round-trip; the backend's create response is the
authoritative decision and a racing second create still comes back as a
``ConflictError``.
"""

from typing import Iterable, Union

from kosan.schemas.booking.booking_base import BookingRecord
from kosan.schemas.booking.booking_response import BookingView, GuardDecision
from kosan.schemas.common.enums import ACTIVE_BOOKING_STATUSES

ACTIVE_BOOKING_MESSAGE = (
    "You already have an active booking. Complete or cancel it before booking another room."
)


def can_create_booking(existing: Iterable[Union[BookingRecord, BookingView]]) -> GuardDecision:
    for booking in existing:
        if booking.status in ACTIVE_BOOKING_STATUSES:
            return GuardDecision(
                allowed=False,
                reason=ACTIVE_BOOKING_MESSAGE,
                blocking_booking_id=booking.id,
            )
    return GuardDecision(allowed=True)
