"""
Booking extension schemas.

An extension does not create a new booking: it asks the backend for a new
``extend`` payment, and the booking's duration grows once that payment is
confirmed.
"""

from datetime import date as Date
from decimal import Decimal
from typing import Any, Dict

from pydantic import Field

from kosan.schemas.common.base import BaseSchema
from kosan.schemas.common.enums import PaymentMethod
from kosan.schemas.common.status_map import to_wire_payment_method

__all__ = [
    "ExtensionRequest",
    "ExtensionPreview",
]


class ExtensionRequest(BaseSchema):
    """Extend an existing booking by a number of months."""

    booking_id: int = Field(..., gt=0, description="Booking to extend")
    extra_months: int = Field(..., ge=1, description="Additional months")
    method: PaymentMethod = Field(..., description="How the extension will be paid")

    def to_wire(self) -> Dict[str, Any]:
        return {
            "months": self.extra_months,
            "payment_method": to_wire_payment_method(self.method),
        }


class ExtensionPreview(BaseSchema):
    """
    Dates and cost shown while the tenant picks a duration.

    Display only; the backend computes and persists the real values.
    """

    booking_id: int
    extra_months: int = Field(..., ge=1)
    current_end_date: Date
    new_end_date: Date
    new_due_date: Date
    monthly_price: Decimal = Field(..., ge=0)
    cost: Decimal = Field(..., ge=0)
