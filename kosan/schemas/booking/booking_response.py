"""
Booking view schemas.

UI-ready models produced by the booking projector. Views are derived data:
they are rebuilt from fresh records after every mutation, never patched.
"""

from datetime import date as Date
from decimal import Decimal
from typing import Tuple, Union

from pydantic import ConfigDict, Field, computed_field

from kosan.schemas.booking.booking_base import RoomSnapshot
from kosan.schemas.common.base import BaseSchema
from kosan.schemas.common.enums import BookingStatus, PaymentStatus, PaymentType
from kosan.schemas.payment.payment_base import PaymentRecord

__all__ = [
    "BookingView",
    "BookingSummary",
    "GuardDecision",
    "BookingPreview",
]


class BookingView(BaseSchema):
    """Booking as the tenant dashboard shows it."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    id: int
    room: Union[RoomSnapshot, None] = None
    start_date: Date
    duration_months: int = Field(..., ge=1)
    end_date: Date = Field(..., description="start_date + duration_months")
    due_date: Date = Field(..., description="end_date - 3 days")
    status: BookingStatus
    total_paid: Decimal = Field(..., ge=0, description="Sum of confirmed payments only")
    payments: Tuple[PaymentRecord, ...] = ()
    actionable_payment: Union[PaymentRecord, None] = Field(
        None,
        description="Most recent pending or rejected payment",
    )
    last_payment_status: Union[PaymentStatus, None] = None
    remaining_days: int = Field(..., ge=0)
    is_expired_hint: bool = Field(
        False,
        description="Pending with nothing confirmed past the backend's auto-cancel window",
    )

    @computed_field
    @property
    def requires_action(self) -> bool:
        return self.actionable_payment is not None

    @computed_field
    @property
    def requires_proof_upload(self) -> bool:
        return self.actionable_payment is not None and self.actionable_payment.needs_proof

    @computed_field
    @property
    def can_extend(self) -> bool:
        return self.status is BookingStatus.CONFIRMED

    @computed_field
    @property
    def can_cancel(self) -> bool:
        return self.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    @property
    def monthly_price(self) -> Decimal:
        return self.room.monthly_price if self.room else Decimal("0.00")

    def covers(self, day: Date) -> bool:
        return self.start_date <= day <= self.end_date


class BookingSummary(BaseSchema):
    """Dashboard counters across all of a tenant's bookings."""

    total_bookings: int = 0
    confirmed_count: int = 0
    pending_count: int = 0
    total_paid: Decimal = Decimal("0.00")


class GuardDecision(BaseSchema):
    """Outcome of the single-active-booking pre-check."""

    allowed: bool
    reason: Union[str, None] = None
    blocking_booking_id: Union[int, None] = None


class BookingPreview(BaseSchema):
    """
    Dates and amounts shown on the booking form before submitting.

    Display only; the backend computes the payment amount it stores.
    """

    room_id: int
    start_date: Date
    duration_months: int = Field(..., ge=1)
    end_date: Date
    due_date: Date
    monthly_price: Decimal = Field(..., ge=0)
    total: Decimal = Field(..., ge=0, description="monthly_price * duration_months")
    payment_type: PaymentType
    amount_due: Decimal = Field(..., ge=0, description="Full total, or the down payment share for dp")
