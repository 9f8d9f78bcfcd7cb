"""
Booking cancellation workflow.

    idle -> confirm_pending -> submitting -> success | failed

Cancelling is irreversible and no refund is processed, so the tenant has to
confirm explicitly before the request is sent. There is no automatic retry;
a failed attempt can be confirmed again by the user.
"""

import logging
import threading
from typing import Optional

from kosan.core.abort import AbortController
from kosan.core.exceptions import BaseAppException, ErrorCode, InvalidStateError, RequestAbortedError
from kosan.repositories.booking.booking_repository import BookingRepository
from kosan.schemas.booking.booking_response import BookingView
from kosan.schemas.common.enums import ACTIVE_BOOKING_STATUSES, BookingStatus, CancellationState
from kosan.services.base.service_result import ErrorSeverity, ServiceError, ServiceResult
from kosan.services.booking.booking_service import BookingService

CANCELLABLE_STATUSES = [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]


class CancellationWorkflow:
    """State machine for cancelling one booking."""

    def __init__(
        self,
        booking: BookingView,
        bookings: BookingRepository,
        read_model: BookingService,
    ):
        self.booking = booking
        self.bookings = bookings
        self.read_model = read_model
        self.state = CancellationState.IDLE
        self.error: Optional[ServiceError] = None

        self._controller = AbortController()
        self._disposed = False
        self._lock = threading.Lock()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def is_busy(self) -> bool:
        return self.state is CancellationState.SUBMITTING

    def request_cancel(self) -> None:
        """
        Ask the tenant to confirm.

        Raises:
            InvalidStateError: The booking is neither Pending nor Confirmed,
                or a cancellation is already under way. State is unchanged.
        """
        if self.booking.status not in ACTIVE_BOOKING_STATUSES:
            raise InvalidStateError(
                f"A {self.booking.status.value.lower()} booking cannot be cancelled",
                current_status=self.booking.status.value,
                allowed_statuses=CANCELLABLE_STATUSES,
            )
        if self._disposed or self.state not in (CancellationState.IDLE, CancellationState.FAILED):
            raise InvalidStateError(
                "Cancellation is already in progress",
                current_status=self.booking.status.value,
                allowed_statuses=CANCELLABLE_STATUSES,
            )
        self.error = None
        self.state = CancellationState.CONFIRM_PENDING

    def dismiss(self) -> None:
        """Tenant backed out of the confirmation dialog."""
        if self.state is CancellationState.CONFIRM_PENDING:
            self.state = CancellationState.IDLE

    def confirm(self) -> ServiceResult[int]:
        """
        Send the cancellation.

        Returns:
            ServiceResult containing the cancelled booking id
        """
        with self._lock:
            if self._disposed:
                return self._reject(ErrorCode.REQUEST_ABORTED, "Cancellation dialog is closed")
            if self.state is not CancellationState.CONFIRM_PENDING:
                return self._reject(ErrorCode.INVALID_STATE, "Confirm the cancellation first")
            self.state = CancellationState.SUBMITTING

        booking_id = self.booking.id
        signal = self._controller.signal
        try:
            self.bookings.cancel_booking(booking_id, signal=signal)
        except RequestAbortedError as e:
            self.read_model.invalidate()
            return ServiceResult.from_exception(e, "cancel booking", severity=ErrorSeverity.INFO)
        except BaseAppException as e:
            self.read_model.invalidate()
            self._logger.warning(
                f"Failed to cancel booking {booking_id}: {e.message}",
                extra={"booking_id": booking_id, "error_code": e.error_code.value},
            )
            result = ServiceResult.from_exception(e, "cancel booking")
            if not self._disposed:
                self.state = CancellationState.FAILED
                self.error = result.error
            return result

        self.read_model.invalidate()
        if self._disposed:
            return self._reject(ErrorCode.REQUEST_ABORTED, "Cancellation dialog is closed")

        self.state = CancellationState.SUCCESS
        self._logger.info(f"Booking {booking_id} cancelled", extra={"booking_id": booking_id})
        try:
            self.read_model.refresh(signal)
        except BaseAppException as e:
            self._logger.warning(
                f"Refresh after cancellation failed: {e.message}",
                extra={"booking_id": booking_id, "error_code": e.error_code.value},
            )
        return ServiceResult.success(booking_id, message="Booking cancelled successfully")

    def _reject(self, code: ErrorCode, message: str) -> ServiceResult[int]:
        return ServiceResult.failure(
            ServiceError(
                code=code,
                message=message,
                severity=ErrorSeverity.WARNING,
                details={"state": self.state.value},
            )
        )

    def dispose(self) -> None:
        """Abort an in-flight cancel and stop applying its result."""
        self._disposed = True
        self._controller.abort("cancellation dialog closed")
