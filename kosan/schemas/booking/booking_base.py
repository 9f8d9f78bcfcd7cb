"""
Booking base schemas.

This module defines the room snapshot, the booking record as parsed from
the backend, and the create request sent when a tenant books a room.
"""

from datetime import date as Date, datetime
from decimal import Decimal
from typing import Any, Dict, Tuple, Union

from pydantic import Field, ValidationError as PydanticValidationError, field_validator

from kosan.core.exceptions import MalformedResponseError
from kosan.schemas.common.base import BaseSchema, WireRecordSchema, pick
from kosan.schemas.common.enums import BookingStatus
from kosan.schemas.common.status_map import resolve_booking_status
from kosan.schemas.payment.payment_base import PaymentRecord, to_decimal
from kosan.utils.date_utils import parse_wire_date, parse_wire_datetime

__all__ = [
    "RoomSnapshot",
    "BookingRecord",
    "BookingCreate",
]


class RoomSnapshot(WireRecordSchema):
    """Read-only copy of the booked room (kamar) as the backend sent it."""

    id: Union[int, None] = Field(None, description="Room (kamar) id")
    number: Union[str, None] = Field(None, description="Room number")
    type: Union[str, None] = Field(None, description="Room type")
    floor: Union[int, None] = Field(None, description="Floor")
    monthly_price: Decimal = Field(Decimal("0.00"), ge=0, description="Price per month")
    image_url: Union[str, None] = Field(None, description="Image path or absolute URL")

    @property
    def display_name(self) -> str:
        return f"{self.number or 'Kamar'} - {self.type or ''}".rstrip(" -")

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "RoomSnapshot":
        payload = {
            "id": pick(data, ("id", "ID")),
            "number": pick(data, ("nomor_kamar", "number")),
            "type": pick(data, ("tipe_kamar", "type")),
            "floor": pick(data, ("floor", "lantai")),
            "monthly_price": to_decimal(pick(data, ("harga_per_bulan", "monthly_price")), "harga_per_bulan"),
            "image_url": pick(data, ("image_url",)),
        }
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                "Room snapshot has an unexpected shape",
                details={"errors": e.errors(include_url=False)},
            ) from e


class BookingRecord(WireRecordSchema):
    """
    Booking (pemesanan) as stored by the backend.

    End and due dates are deliberately absent: they are always derived
    from ``start_date`` and ``duration_months`` by the projector.
    """

    id: int = Field(..., description="Booking id assigned by the backend")
    room_id: Union[int, None] = Field(None, description="Booked room id")
    room: Union[RoomSnapshot, None] = Field(None, description="Room snapshot")
    start_date: Date = Field(..., description="Move-in date")
    duration_months: int = Field(..., ge=1, description="Rental length in months")
    status: BookingStatus = Field(..., description="Canonical booking status")
    reported_total_paid: Union[Decimal, None] = Field(
        None,
        description="Backend's total_bayar; informational, recomputed from payments",
    )
    payments: Tuple[PaymentRecord, ...] = Field(
        default=(),
        description="Payments in chronological order, most recent last",
    )
    created_at: Union[datetime, None] = Field(None, description="Creation timestamp")

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "BookingRecord":
        """
        Parse a backend booking payload.

        Payments arrive as ``payments`` from the bookings list handler and
        as ``pembayaran`` / ``Pembayaran`` from preloaded models.
        """
        if not isinstance(data, dict):
            raise MalformedResponseError("Booking record must be an object", details={"value": data})

        booking_id = pick(data, ("id", "ID"))
        raw_room = pick(data, ("kamar", "Kamar", "room"))
        room = RoomSnapshot.from_wire(raw_room) if isinstance(raw_room, dict) and raw_room else None
        raw_payments = pick(data, ("payments", "pembayaran", "Pembayaran"), [])
        if not isinstance(raw_payments, list):
            raise MalformedResponseError("Booking payments must be a list", details={"booking_id": booking_id})

        reported_total = pick(data, ("total_bayar",))
        payload = {
            "id": booking_id,
            "room_id": pick(data, ("kamar_id", "KamarID"), room.id if room else None),
            "room": room,
            "start_date": parse_wire_date(pick(data, ("tanggal_mulai", "start_date"))),
            "duration_months": pick(data, ("durasi_sewa", "duration_months")),
            "status": resolve_booking_status(pick(data, ("status_pemesanan", "status"))),
            "reported_total_paid": to_decimal(reported_total, "total_bayar") if reported_total is not None else None,
            "payments": tuple(PaymentRecord.from_wire(p, booking_id=booking_id) for p in raw_payments),
            "created_at": parse_wire_datetime(pick(data, ("created_at", "CreatedAt"))),
        }
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                "Booking record has an unexpected shape",
                details={"booking_id": booking_id, "errors": e.errors(include_url=False)},
            ) from e


class BookingCreate(BaseSchema):
    """Create request: room selection, move-in date and duration."""

    room_id: int = Field(..., gt=0, description="Room (kamar) to book")
    start_date: Date = Field(..., description="Move-in date")
    duration_months: int = Field(..., ge=1, description="Rental length in months")

    @field_validator("duration_months", mode="before")
    @classmethod
    def reject_non_integer_duration(cls, v: Any) -> Any:
        if isinstance(v, bool) or (isinstance(v, float) and not v.is_integer()):
            raise ValueError("Duration must be a whole number of months")
        return v

    def to_wire(self) -> Dict[str, Any]:
        return {
            "kamar_id": self.room_id,
            "tanggal_mulai": self.start_date.isoformat(),
            "durasi_sewa": self.duration_months,
        }
