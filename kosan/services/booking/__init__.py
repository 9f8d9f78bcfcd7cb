"""
Booking services package.

Provides the booking read model, the projector that turns records into
dashboard views, the single-active-booking guard, and the extension and
cancellation workflows.
"""

from kosan.services.booking.booking_cancellation_service import CancellationWorkflow
from kosan.services.booking.booking_extension_service import ExtensionWorkflow
from kosan.services.booking.booking_guard_service import can_create_booking
from kosan.services.booking.booking_projection_service import (
    BookingProjector,
    compute_total_paid,
    find_actionable_payment,
)
from kosan.services.booking.booking_service import BookingService

__all__ = [
    "BookingProjector",
    "BookingService",
    "CancellationWorkflow",
    "ExtensionWorkflow",
    "can_create_booking",
    "compute_total_paid",
    "find_actionable_payment",
]
