"""
Payment schemas.

A payment belongs to exactly one booking. Records are parsed from the
backend's ``pembayaran`` payloads; every enum goes through the status
lookup tables so unknown tags are rejected at this boundary.
"""

from datetime import date as Date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Union

from pydantic import Field, ValidationError as PydanticValidationError

from kosan.core.exceptions import MalformedResponseError
from kosan.schemas.common.base import WireRecordSchema, pick
from kosan.schemas.common.enums import (
    ACTIONABLE_PAYMENT_STATUSES,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)
from kosan.schemas.common.status_map import (
    resolve_payment_method,
    resolve_payment_status,
    resolve_payment_type,
)
from kosan.utils.date_utils import parse_wire_date, parse_wire_datetime

__all__ = [
    "PaymentRecord",
    "to_decimal",
]


def to_decimal(value: Any, field: str) -> Decimal:
    """Convert a JSON number to ``Decimal`` without float artefacts."""
    if value is None:
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError) as e:
        raise MalformedResponseError(
            f"Invalid amount in field '{field}'",
            details={"field": field, "value": value},
        ) from e


class PaymentRecord(WireRecordSchema):
    """One settlement attempt tied to a booking."""

    id: int = Field(..., description="Payment identifier")
    booking_id: Union[int, None] = Field(None, description="Owning booking (pemesanan) id")
    amount: Decimal = Field(Decimal("0.00"), ge=0, description="Amount in rupiah")
    method: Union[PaymentMethod, None] = Field(None, description="transfer, cash or gateway")
    type: Union[PaymentType, None] = Field(None, description="initial, extend or dp")
    status: PaymentStatus = Field(..., description="Canonical payment status")
    proof_ref: Union[str, None] = Field(None, description="Uploaded proof-of-transfer reference")
    paid_at: Union[datetime, None] = Field(None, description="Set once confirmed")
    due_date: Union[Date, None] = Field(None, description="Instalment due date for dp payments")
    created_at: Union[datetime, None] = Field(None, description="Creation timestamp")

    @property
    def is_actionable(self) -> bool:
        return self.status in ACTIONABLE_PAYMENT_STATUSES

    @property
    def is_confirmed(self) -> bool:
        return self.status is PaymentStatus.CONFIRMED

    @property
    def needs_proof(self) -> bool:
        """Pending bank transfer with nothing uploaded yet."""
        return (
            self.status is PaymentStatus.PENDING
            and self.method is PaymentMethod.TRANSFER
            and not self.proof_ref
        )

    @classmethod
    def from_wire(cls, data: Dict[str, Any], booking_id: Union[int, None] = None) -> "PaymentRecord":
        """Parse a backend payment payload."""
        if not isinstance(data, dict):
            raise MalformedResponseError("Payment record must be an object", details={"value": data})

        payload = {
            "id": pick(data, ("id", "ID")),
            "booking_id": pick(data, ("pemesanan_id", "booking_id", "PemesananID"), booking_id),
            "amount": to_decimal(pick(data, ("jumlah_bayar", "amount")), "jumlah_bayar"),
            "method": resolve_payment_method(pick(data, ("metode_pembayaran", "payment_method", "method"))),
            "type": resolve_payment_type(pick(data, ("tipe_pembayaran", "payment_type", "type"))),
            "status": resolve_payment_status(pick(data, ("status_pembayaran", "status"))),
            "proof_ref": pick(data, ("bukti_transfer", "proof_url", "url")) or None,
            "paid_at": parse_wire_datetime(pick(data, ("tanggal_bayar", "paid_at"))),
            "due_date": parse_wire_date(pick(data, ("tanggal_jatuh_tempo", "due_date"))),
            "created_at": parse_wire_datetime(pick(data, ("created_at", "CreatedAt"))),
        }
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                "Payment record has an unexpected shape",
                details={"errors": e.errors(include_url=False)},
            ) from e
