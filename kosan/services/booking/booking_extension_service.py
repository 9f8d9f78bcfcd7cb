"""
Booking extension workflow.

One ``ExtensionWorkflow`` drives one extension attempt:

    idle -> duration_selected -> [proof_required] -> submitting -> success | failed

Bank transfers cannot leave ``proof_required`` until a proof image is
attached; cash goes straight from ``duration_selected`` to ``submitting``.

Submitting is two separate backend writes: the extension request creates a
pending ``extend`` payment, then the proof is uploaded against that payment.
If the upload fails the payment stays on the server without proof. Nothing
is rolled back; the booking's actionable payment surfaces it as an upload
still to do, and a retry from ``failed`` uploads to the same payment instead
of requesting a second extension.
"""

import logging
import threading
from typing import Optional

from kosan.config.settings import Settings, get_settings
from kosan.core.abort import AbortController
from kosan.core.exceptions import (
    BaseAppException,
    ErrorCode,
    InvalidStateError,
    RequestAbortedError,
    ValidationError,
)
from kosan.repositories.booking.booking_repository import BookingRepository
from kosan.repositories.payment.payment_repository import PaymentRepository
from kosan.schemas.booking.booking_extension import ExtensionPreview
from kosan.schemas.booking.booking_response import BookingView
from kosan.schemas.common.enums import BookingStatus, ExtensionState, PaymentMethod
from kosan.schemas.payment.payment_base import PaymentRecord
from kosan.schemas.payment.payment_proof import ProofUpload
from kosan.services.base.service_result import ErrorSeverity, ServiceError, ServiceResult
from kosan.services.booking.booking_service import BookingService
from kosan.utils.date_utils import (
    compute_due_date,
    compute_end_date,
    compute_extension_end_date,
    compute_rent_total,
)

EXTENSION_METHODS = (PaymentMethod.TRANSFER, PaymentMethod.CASH)

_EDITABLE_STATES = (
    ExtensionState.IDLE,
    ExtensionState.DURATION_SELECTED,
    ExtensionState.PROOF_REQUIRED,
    ExtensionState.FAILED,
)


class ExtensionWorkflow:
    """
    State machine for extending one booking.

    Remote failures never raise: ``submit`` returns a ``ServiceResult`` and
    the workflow moves to ``failed`` with the error kept on ``self.error``.
    Calls that make no sense for the booking or the current state raise
    ``InvalidStateError`` or ``ValidationError`` immediately.

    ``dispose()`` is the unmount hook: it aborts any request in flight and
    freezes the workflow so a late response cannot change its state.
    """

    def __init__(
        self,
        booking: BookingView,
        bookings: BookingRepository,
        payments: PaymentRepository,
        read_model: BookingService,
        config: Optional[Settings] = None,
    ):
        self.booking = booking
        self.bookings = bookings
        self.payments = payments
        self.read_model = read_model
        self.config = config or get_settings()

        self.state = ExtensionState.IDLE
        self.extra_months: Optional[int] = None
        self.method: Optional[PaymentMethod] = None
        self.proof: Optional[ProofUpload] = None
        self.error: Optional[ServiceError] = None
        self.payment: Optional[PaymentRecord] = None
        self._proof_uploaded = False

        self._controller = AbortController()
        self._disposed = False
        self._lock = threading.Lock()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    @property
    def is_busy(self) -> bool:
        """True while a submit is in flight; the UI disables its controls."""
        return self.state is ExtensionState.SUBMITTING

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def _ensure_editable(self) -> None:
        if self._disposed:
            raise InvalidStateError("Extension form is closed")
        if self.booking.status is not BookingStatus.CONFIRMED:
            raise InvalidStateError(
                "Only confirmed bookings can be extended",
                current_status=self.booking.status.value,
                allowed_statuses=[BookingStatus.CONFIRMED.value],
            )
        if self.state not in _EDITABLE_STATES:
            raise InvalidStateError(f"Cannot change the extension while it is {self.state.value}")
        if self.payment is not None and self.state is ExtensionState.FAILED:
            raise InvalidStateError(
                "The extension payment already exists; only the proof can be uploaded again",
                current_status=self.state.value,
            )

    def _ready_state(self) -> ExtensionState:
        if self.extra_months is None:
            return ExtensionState.IDLE
        if self.method is PaymentMethod.TRANSFER and self.proof is None:
            return ExtensionState.PROOF_REQUIRED
        return ExtensionState.DURATION_SELECTED

    def select_duration(self, extra_months: int) -> ExtensionPreview:
        """Choose how many months to add; returns the date and cost preview."""
        self._ensure_editable()
        if isinstance(extra_months, bool) or not isinstance(extra_months, int) or extra_months < 1:
            raise ValidationError(
                "Extension must be at least 1 month",
                field_errors={"extra_months": [f"got {extra_months!r}"]},
            )
        self.extra_months = extra_months
        self.error = None
        self.state = self._ready_state()
        return self.preview()

    def select_method(self, method: PaymentMethod) -> None:
        self._ensure_editable()
        if self.extra_months is None:
            raise InvalidStateError("Select the extension duration first", current_status=self.state.value)
        if method not in EXTENSION_METHODS:
            raise ValidationError(
                "Invalid payment method",
                field_errors={"payment_method": [str(method)]},
            )
        self.method = method
        if method is not PaymentMethod.TRANSFER:
            self.proof = None
        self.error = None
        self.state = self._ready_state()

    def attach_proof(self, proof: ProofUpload) -> None:
        """Attach the transfer proof; size and type are checked right away."""
        if self._disposed:
            raise InvalidStateError("Extension form is closed")
        if self.state not in _EDITABLE_STATES:
            raise InvalidStateError(f"Cannot attach a proof while the extension is {self.state.value}")
        proof.validate(self.config.MAX_PROOF_UPLOAD_SIZE, self.config.ALLOWED_PROOF_CONTENT_TYPES)
        self.proof = proof
        self.error = None
        if self.state is not ExtensionState.FAILED:
            self.state = self._ready_state()

    def preview(self) -> ExtensionPreview:
        """
        Dates and cost for the chosen duration.

        The new end date is recomputed from the original start date with the
        combined duration, which is what the backend persists once the
        extension payment is confirmed.
        """
        if self.extra_months is None:
            raise InvalidStateError("Select the extension duration first", current_status=self.state.value)
        booking = self.booking
        new_end = compute_extension_end_date(booking.start_date, booking.duration_months, self.extra_months)
        return ExtensionPreview(
            booking_id=booking.id,
            extra_months=self.extra_months,
            current_end_date=compute_end_date(booking.start_date, booking.duration_months),
            new_end_date=new_end,
            new_due_date=compute_due_date(new_end),
            monthly_price=booking.monthly_price,
            cost=compute_rent_total(booking.monthly_price, self.extra_months),
        )

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def _reject(self, code: ErrorCode, message: str, field: Optional[str] = None) -> ServiceResult[PaymentRecord]:
        return ServiceResult.failure(
            ServiceError(
                code=code,
                message=message,
                severity=ErrorSeverity.WARNING,
                field=field,
                details={"state": self.state.value},
            )
        )

    def submit(self) -> ServiceResult[PaymentRecord]:
        """
        Send the extension, and the proof for transfers.

        Returns:
            ServiceResult containing the extension payment, or the failure
        """
        with self._lock:
            if self._disposed:
                return self._reject(ErrorCode.REQUEST_ABORTED, "Extension form is closed")
            if self.state is ExtensionState.SUBMITTING:
                return self._reject(ErrorCode.INVALID_STATE, "Extension is already being submitted")
            if self.state is ExtensionState.SUCCESS:
                return self._reject(ErrorCode.INVALID_STATE, "Extension was already submitted")
            if self.booking.status is not BookingStatus.CONFIRMED:
                return self._reject(ErrorCode.INVALID_STATE, "Only confirmed bookings can be extended")
            if self.extra_months is None or self.method is None:
                return ServiceResult.validation_failure(
                    "Select the extension duration and payment method first",
                    field="extra_months" if self.extra_months is None else "payment_method",
                )
            if self.method is PaymentMethod.TRANSFER and self.proof is None:
                return ServiceResult.validation_failure(
                    "Payment proof is required for bank transfer",
                    field="proof",
                )
            self.state = ExtensionState.SUBMITTING
            self.error = None

        signal = self._controller.signal
        context = {
            "booking_id": self.booking.id,
            "extra_months": self.extra_months,
            "payment_method": self.method.value,
        }

        if self.payment is None:
            try:
                self.payment = self.bookings.extend_booking(
                    self.booking.id, self.extra_months, self.method, signal=signal
                )
            except RequestAbortedError as e:
                self.read_model.invalidate()
                return ServiceResult.from_exception(e, "extend booking", severity=ErrorSeverity.INFO)
            except BaseAppException as e:
                # The extend payment may exist even though the response was lost.
                self.read_model.invalidate()
                return self._fail(e, "extend booking", context)

        if self.method is PaymentMethod.TRANSFER and not self._proof_uploaded:
            try:
                self.payments.upload_payment_proof(self.payment.id, self.proof, signal=signal)
            except RequestAbortedError as e:
                self.read_model.invalidate()
                return ServiceResult.from_exception(e, "upload payment proof", severity=ErrorSeverity.INFO)
            except BaseAppException as e:
                self.read_model.invalidate()
                return self._fail(
                    e,
                    "upload payment proof",
                    {**context, "payment_id": self.payment.id, "payment_created": True},
                )
            self._proof_uploaded = True

        if self._disposed:
            self.read_model.invalidate()
            return self._reject(ErrorCode.REQUEST_ABORTED, "Extension form is closed")

        self.state = ExtensionState.SUCCESS
        self._logger.info(
            f"Extension submitted for booking {self.booking.id}",
            extra={**context, "payment_id": self.payment.id},
        )
        self._refresh_read_models()
        return ServiceResult.success(
            self.payment,
            message="Extension requested. It takes effect once the payment is confirmed.",
            metadata={"payment_id": self.payment.id},
        )

    def _fail(self, error: BaseAppException, operation: str, context: dict) -> ServiceResult[PaymentRecord]:
        self._logger.warning(
            f"Failed to {operation}: {error.message}",
            extra={**context, "error_code": error.error_code.value},
        )
        result = ServiceResult.from_exception(error, operation, metadata=dict(context))
        if not self._disposed:
            self.state = ExtensionState.FAILED
            self.error = result.error
        return result

    def _refresh_read_models(self) -> None:
        self.read_model.invalidate()
        try:
            self.read_model.refresh(self._controller.signal)
        except BaseAppException as e:
            # The extension itself went through; the next read refetches.
            self._logger.warning(
                f"Refresh after extension failed: {e.message}",
                extra={"booking_id": self.booking.id, "error_code": e.error_code.value},
            )

    def dispose(self) -> None:
        """Abort in-flight requests and stop applying their results."""
        self._disposed = True
        self._controller.abort("extension form closed")
