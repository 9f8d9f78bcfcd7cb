"""
Booking repository.

Typed access to the booking endpoints. Every method returns parsed client
records; backend field-name variations are absorbed by the ``from_wire``
constructors so callers only ever see the canonical shape.
"""

from datetime import date
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from kosan.core.abort import AbortSignal
from kosan.core.exceptions import (
    ConflictError,
    InvalidStateError,
    MalformedResponseError,
    ValidationError,
)
from kosan.core.logging import get_logger
from kosan.repositories.base.api_client import ApiClient, expect_list
from kosan.schemas.booking.booking_base import BookingCreate, BookingRecord
from kosan.schemas.booking.booking_extension import ExtensionRequest
from kosan.schemas.common.enums import BookingStatus, PaymentMethod, PaymentType
from kosan.schemas.common.status_map import to_wire_payment_method, to_wire_payment_type
from kosan.schemas.payment.payment_base import PaymentRecord
from kosan.schemas.payment.payment_proof import ProofUpload

logger = get_logger(__name__)

# Phrases the backend uses when a cancel hits a booking in the wrong status.
_CANCEL_STATE_HINTS = ("already cancelled", "cannot be cancelled", "cannot cancel")


def _pydantic_to_validation_error(e: PydanticValidationError) -> ValidationError:
    field_errors = {}
    for item in e.errors(include_url=False):
        field = ".".join(str(loc) for loc in item.get("loc", ())) or "__root__"
        field_errors.setdefault(field, []).append(item.get("msg", "invalid"))
    return ValidationError("Invalid booking request", field_errors=field_errors)


class BookingRepository:
    """Booking endpoints of the kos backend."""

    def __init__(self, client: ApiClient):
        self.client = client

    def fetch_my_bookings(self, signal: Optional[AbortSignal] = None) -> List[BookingRecord]:
        """Bookings of the logged-in tenant, newest first as the backend sends them."""
        payload = self.client.get("/bookings", signal=signal)
        return [BookingRecord.from_wire(item) for item in expect_list(payload, "bookings")]

    def create_booking(
        self,
        room_id: int,
        start_date: date,
        duration_months: int,
        signal: Optional[AbortSignal] = None,
    ) -> BookingRecord:
        """
        Create a booking.

        Raises:
            ValidationError: Bad input, locally or from the backend
            ConflictError: Room unavailable or tenant already holds an active booking
        """
        request = self._build_create(room_id, start_date, duration_months)
        payload = self.client.post("/bookings", json=request.to_wire(), signal=signal)
        record = BookingRecord.from_wire(payload)
        logger.info("Booking created", extra={"booking_id": record.id, "room_id": room_id})
        return record

    def create_booking_with_proof(
        self,
        room_id: int,
        start_date: date,
        duration_months: int,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        proof: Optional[ProofUpload] = None,
        signal: Optional[AbortSignal] = None,
    ) -> BookingRecord:
        """
        Create a booking together with its first payment in one multipart call.

        ``transfer`` requires an image proof; ``cash`` sends none.
        """
        request = self._build_create(room_id, start_date, duration_months)
        if payment_type not in (PaymentType.INITIAL, PaymentType.DP):
            raise ValidationError(
                "Invalid payment type",
                field_errors={"payment_type": [f"{payment_type} is not allowed for a new booking"]},
            )
        if payment_method is PaymentMethod.TRANSFER:
            if proof is None:
                raise ValidationError(
                    "Payment proof is required for bank transfer",
                    field_errors={"proof": ["required"]},
                )
            config = self.client.config
            proof.validate(config.MAX_PROOF_UPLOAD_SIZE, config.ALLOWED_PROOF_CONTENT_TYPES)
        elif payment_method is not PaymentMethod.CASH:
            raise ValidationError(
                "Invalid payment method",
                field_errors={"payment_method": [str(payment_method)]},
            )

        form = {key: str(value) for key, value in request.to_wire().items()}
        form["payment_type"] = to_wire_payment_type(payment_type)
        form["payment_method"] = to_wire_payment_method(payment_method)
        files = None
        if payment_method is PaymentMethod.TRANSFER:
            files = {"proof": (proof.filename, proof.content, proof.content_type)}

        payload = self.client.post("/bookings/with-proof", data=form, files=files, signal=signal)
        record = BookingRecord.from_wire(payload)
        logger.info(
            "Booking created with payment",
            extra={"booking_id": record.id, "payment_method": form["payment_method"]},
        )
        return record

    def extend_booking(
        self,
        booking_id: int,
        extra_months: int,
        method: PaymentMethod,
        signal: Optional[AbortSignal] = None,
    ) -> PaymentRecord:
        """Request an extension; returns the new pending ``extend`` payment."""
        try:
            request = ExtensionRequest(booking_id=booking_id, extra_months=extra_months, method=method)
        except PydanticValidationError as e:
            raise _pydantic_to_validation_error(e) from e

        payload = self.client.post(f"/bookings/{booking_id}/extend", json=request.to_wire(), signal=signal)
        if not isinstance(payload, dict):
            raise MalformedResponseError("Extension did not return a payment", details={"booking_id": booking_id})
        payment = PaymentRecord.from_wire(payload, booking_id=booking_id)
        logger.info(
            "Extension payment created",
            extra={"booking_id": booking_id, "payment_id": payment.id, "extra_months": extra_months},
        )
        return payment

    def cancel_booking(self, booking_id: int, signal: Optional[AbortSignal] = None) -> None:
        """
        Cancel a booking.

        Raises:
            InvalidStateError: The backend refused because of the booking's
                status, including when it is already cancelled
        """
        try:
            self.client.post(f"/bookings/{booking_id}/cancel", signal=signal)
        except InvalidStateError:
            raise
        except ConflictError as e:
            raise InvalidStateError(e.message) from e
        except ValidationError as e:
            if any(hint in e.message.lower() for hint in _CANCEL_STATE_HINTS):
                current = BookingStatus.CANCELLED.value if "already cancelled" in e.message.lower() else None
                raise InvalidStateError(
                    e.message,
                    current_status=current,
                    allowed_statuses=[BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value],
                ) from e
            raise
        logger.info("Booking cancelled", extra={"booking_id": booking_id})

    @staticmethod
    def _build_create(room_id: int, start_date: date, duration_months: int) -> BookingCreate:
        try:
            return BookingCreate(room_id=room_id, start_date=start_date, duration_months=duration_months)
        except PydanticValidationError as e:
            raise _pydantic_to_validation_error(e) from e
