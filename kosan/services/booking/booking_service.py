"""
Booking read model and booking creation.

Bookings and reminders are cached per user and never expire on a timer:
payment confirmation is an admin decision taken at an arbitrary time, so
the cache is dropped explicitly after every create, extend and cancel and
whenever the session ends. Mutations are never applied to cached data;
the next read goes back to the server.
"""

from datetime import date
from decimal import Decimal
import logging
from typing import Callable, Optional, Tuple

from kosan.config.settings import Settings, get_settings
from kosan.core.abort import AbortSignal
from kosan.core.cache import CacheManager
from kosan.core.exceptions import (
    BaseAppException,
    ErrorCode,
    RequestAbortedError,
    ResourceNotFoundError,
    ValidationError,
)
from kosan.core.session import CurrentUser, SessionState
from kosan.repositories.booking.booking_repository import BookingRepository
from kosan.repositories.payment.payment_repository import PaymentRepository
from kosan.schemas.booking.booking_base import BookingRecord
from kosan.schemas.booking.booking_response import (
    BookingPreview,
    BookingSummary,
    BookingView,
    GuardDecision,
)
from kosan.schemas.common.enums import PaymentMethod, PaymentType
from kosan.schemas.payment.payment_proof import ProofUpload
from kosan.schemas.payment.payment_reminder import PaymentReminder
from kosan.services.base.service_result import ErrorSeverity, ServiceError, ServiceResult
from kosan.services.booking.booking_guard_service import can_create_booking
from kosan.services.booking.booking_projection_service import BookingProjector
from kosan.utils.date_utils import (
    compute_down_payment,
    compute_due_date,
    compute_end_date,
    compute_rent_total,
)

BOOKINGS_RESOURCE = "bookings"
REMINDERS_RESOURCE = "reminders"


class BookingService:
    """
    Tenant-facing booking read model.

    Features:
    - Read-through cache keyed by the logged-in user
    - Projection of records into dashboard views
    - Guarded booking creation
    """

    def __init__(
        self,
        bookings: BookingRepository,
        payments: PaymentRepository,
        session: SessionState,
        cache: Optional[CacheManager] = None,
        projector: Optional[BookingProjector] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.config = config or get_settings()
        self.bookings = bookings
        self.payments = payments
        self.session = session
        self.cache = cache or CacheManager(config=self.config)
        self.projector = projector or BookingProjector(self.config)
        self.clock = clock
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        session.on_cleared(self._drop_user_cache)

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def _drop_user_cache(self, user: CurrentUser) -> None:
        self.cache.invalidate(str(user.id))

    def _user_ref(self) -> str:
        return self.session.cache_identity()

    def invalidate(self) -> None:
        """Forget the current user's bookings and reminders."""
        self.cache.invalidate(self._user_ref())

    def refresh(self, signal: Optional[AbortSignal] = None) -> Tuple[BookingView, ...]:
        """Drop cached data and refetch both read models."""
        self.invalidate()
        self.list_reminders(signal)
        return self.list_bookings(signal)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _records(self, signal: Optional[AbortSignal]) -> Tuple[BookingRecord, ...]:
        return self.cache.get_or_load(
            self._user_ref(),
            BOOKINGS_RESOURCE,
            lambda: tuple(self.bookings.fetch_my_bookings(signal)),
        )

    def list_bookings(self, signal: Optional[AbortSignal] = None) -> Tuple[BookingView, ...]:
        """
        The tenant's bookings as views.

        Repository errors propagate unchanged; a failed fetch leaves the
        cache empty so the next call retries.
        """
        return self.projector.project(self._records(signal), self.clock())

    def get_booking(self, booking_id: int, signal: Optional[AbortSignal] = None) -> BookingView:
        for view in self.list_bookings(signal):
            if view.id == booking_id:
                return view
        raise ResourceNotFoundError("Booking", str(booking_id))

    def list_reminders(self, signal: Optional[AbortSignal] = None) -> Tuple[PaymentReminder, ...]:
        return self.cache.get_or_load(
            self._user_ref(),
            REMINDERS_RESOURCE,
            lambda: tuple(self.payments.fetch_reminders(signal)),
        )

    def overdue_reminders(self, signal: Optional[AbortSignal] = None) -> Tuple[PaymentReminder, ...]:
        return tuple(self.projector.overdue_reminders(self.list_reminders(signal), self.clock()))

    def summary(self, signal: Optional[AbortSignal] = None) -> BookingSummary:
        return self.projector.summarize(self.list_bookings(signal))

    def booking_on(self, day: date, signal: Optional[AbortSignal] = None) -> Optional[BookingView]:
        return self.projector.find_booking_on(self.list_bookings(signal), day)

    def check_can_create(self, signal: Optional[AbortSignal] = None) -> GuardDecision:
        return can_create_booking(self.list_bookings(signal))

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def preview_booking(
        self,
        room_id: int,
        monthly_price: Decimal,
        start_date: date,
        duration_months: int,
        payment_type: PaymentType = PaymentType.INITIAL,
    ) -> BookingPreview:
        """
        Dates and first payment for the booking form.

        A ``dp`` booking pays ``DOWN_PAYMENT_RATIO`` of the total up front.

        Raises:
            ValidationError: Duration below one month or a payment type
                that cannot open a booking
        """
        if payment_type not in (PaymentType.INITIAL, PaymentType.DP):
            raise ValidationError(
                "Invalid payment type",
                field_errors={"payment_type": [str(payment_type)]},
            )
        end_date = compute_end_date(start_date, duration_months)
        total = compute_rent_total(monthly_price, duration_months)
        amount_due = total
        if payment_type is PaymentType.DP:
            amount_due = compute_down_payment(total, self.config.DOWN_PAYMENT_RATIO)
        return BookingPreview(
            room_id=room_id,
            start_date=start_date,
            duration_months=duration_months,
            end_date=end_date,
            due_date=compute_due_date(end_date),
            monthly_price=monthly_price,
            total=total,
            payment_type=payment_type,
            amount_due=amount_due,
        )

    def create_booking(
        self,
        room_id: int,
        start_date: date,
        duration_months: int,
        signal: Optional[AbortSignal] = None,
    ) -> ServiceResult[BookingRecord]:
        """
        Create a booking after the single-active-booking pre-check.

        Returns:
            ServiceResult containing the new BookingRecord, or the guard's
            or backend's error with its message unchanged
        """
        return self._create(
            "create booking",
            lambda: self.bookings.create_booking(room_id, start_date, duration_months, signal=signal),
            signal,
            {"room_id": room_id},
        )

    def create_booking_with_proof(
        self,
        room_id: int,
        start_date: date,
        duration_months: int,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        proof: Optional[ProofUpload] = None,
        signal: Optional[AbortSignal] = None,
    ) -> ServiceResult[BookingRecord]:
        """Create a booking and its first payment, with proof for transfers."""
        return self._create(
            "create booking with payment",
            lambda: self.bookings.create_booking_with_proof(
                room_id,
                start_date,
                duration_months,
                payment_type,
                payment_method,
                proof=proof,
                signal=signal,
            ),
            signal,
            {"room_id": room_id, "payment_method": payment_method.value},
        )

    def _create(
        self,
        operation: str,
        call: Callable[[], BookingRecord],
        signal: Optional[AbortSignal],
        context: dict,
    ) -> ServiceResult[BookingRecord]:
        try:
            decision = self.check_can_create(signal)
        except BaseAppException as e:
            self._logger.warning(f"Guard check failed: {e.message}", extra=context)
            return ServiceResult.from_exception(e, operation)

        if not decision.allowed:
            self._logger.info(
                "Booking creation blocked by active booking",
                extra={**context, "blocking_booking_id": decision.blocking_booking_id},
            )
            return ServiceResult.failure(
                ServiceError(
                    code=ErrorCode.BOOKING_CONFLICT,
                    message=decision.reason,
                    severity=ErrorSeverity.WARNING,
                    details={"blocking_booking_id": decision.blocking_booking_id},
                )
            )

        try:
            record = call()
        except RequestAbortedError as e:
            # The backend may have accepted the booking before the abort.
            self.invalidate()
            return ServiceResult.from_exception(e, operation, severity=ErrorSeverity.INFO)
        except BaseAppException as e:
            # A timeout or 5xx can arrive after the booking was stored.
            self.invalidate()
            self._logger.warning(
                f"Failed to {operation}: {e.message}",
                extra={**context, "error_code": e.error_code.value},
            )
            return ServiceResult.from_exception(e, operation)

        self.invalidate()
        self._logger.info(f"Booking {record.id} created", extra={**context, "booking_id": record.id})
        return ServiceResult.success(record, message="Booking created successfully")
