"""
Booking state projection.

Turns parsed booking records into dashboard views: derived dates, the one
payment the tenant still has to act on, and the confirmed total. Pure and
synchronous; no I/O happens here.

Notes:
- Backend status strings are resolved once, by the lookup tables in
  ``kosan.schemas.common.status_map``, when records are parsed. The
  projector only ever sees canonical enums.
- ``total_paid`` is recomputed from confirmed payments. The backend's
  ``total_bayar`` is ignored because it can lag behind admin decisions.
"""

from datetime import date, timedelta
from decimal import Decimal
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from kosan.config.settings import Settings, get_settings
from kosan.schemas.booking.booking_base import BookingRecord
from kosan.schemas.booking.booking_response import BookingSummary, BookingView
from kosan.schemas.common.enums import BookingStatus
from kosan.schemas.payment.payment_base import PaymentRecord
from kosan.schemas.payment.payment_reminder import PaymentReminder
from kosan.utils.date_utils import compute_due_date, compute_end_date, remaining_days

logger = logging.getLogger(__name__)


def find_actionable_payment(payments: Sequence[PaymentRecord]) -> Optional[PaymentRecord]:
    """
    Most recent payment that is pending or rejected.

    ``payments`` is chronological, so recency is list position rather than
    payment id.
    """
    for payment in reversed(payments):
        if payment.is_actionable:
            return payment
    return None


def compute_total_paid(payments: Iterable[PaymentRecord]) -> Decimal:
    return sum((p.amount for p in payments if p.is_confirmed), Decimal("0.00"))


class BookingProjector:
    """
    Project booking records into ``BookingView`` objects.

    The last projection is memoized on the identity of the input sequence
    and ``today``: handing the same list object back returns the same
    tuple of views without recomputation. Callers must pass a new sequence
    whenever the underlying data changes, which the read model does by
    replacing its cached list on every refetch.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or get_settings()
        self._memo_input: Optional[Sequence[BookingRecord]] = None
        self._memo_today: Optional[date] = None
        self._memo_output: Tuple[BookingView, ...] = ()

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------

    def project(self, records: Sequence[BookingRecord], today: date) -> Tuple[BookingView, ...]:
        if records is self._memo_input and today == self._memo_today:
            return self._memo_output

        views = tuple(self.project_one(record, today) for record in records)
        self._memo_input = records
        self._memo_today = today
        self._memo_output = views
        logger.debug("Projected bookings", extra={"count": len(views), "today": today.isoformat()})
        return views

    def project_one(self, record: BookingRecord, today: date) -> BookingView:
        end = compute_end_date(record.start_date, record.duration_months)
        actionable = find_actionable_payment(record.payments)
        return BookingView(
            id=record.id,
            room=record.room,
            start_date=record.start_date,
            duration_months=record.duration_months,
            end_date=end,
            due_date=compute_due_date(end),
            status=record.status,
            total_paid=compute_total_paid(record.payments),
            payments=record.payments,
            actionable_payment=actionable,
            last_payment_status=record.payments[-1].status if record.payments else None,
            remaining_days=remaining_days(end, today),
            is_expired_hint=self._is_expired_hint(record, today),
        )

    def _is_expired_hint(self, record: BookingRecord, today: date) -> bool:
        """Pending, nothing confirmed, created before the backend's auto-cancel cutoff."""
        if record.status is not BookingStatus.PENDING or record.created_at is None:
            return False
        if any(p.is_confirmed for p in record.payments):
            return False
        cutoff = today - timedelta(days=self.config.PENDING_BOOKING_EXPIRY_DAYS)
        return record.created_at.date() < cutoff

    # -------------------------------------------------------------------------
    # Aggregates & lookups
    # -------------------------------------------------------------------------

    @staticmethod
    def summarize(views: Iterable[BookingView]) -> BookingSummary:
        total = confirmed = pending = 0
        paid = Decimal("0.00")
        for view in views:
            total += 1
            if view.status is BookingStatus.CONFIRMED:
                confirmed += 1
            elif view.status is BookingStatus.PENDING:
                pending += 1
            paid += view.total_paid
        return BookingSummary(
            total_bookings=total,
            confirmed_count=confirmed,
            pending_count=pending,
            total_paid=paid,
        )

    @staticmethod
    def find_booking_on(views: Iterable[BookingView], day: date) -> Optional[BookingView]:
        """Booking whose stay covers ``day``; cancelled bookings never match."""
        for view in views:
            if view.status is not BookingStatus.CANCELLED and view.covers(day):
                return view
        return None

    @staticmethod
    def overdue_reminders(reminders: Iterable[PaymentReminder], today: date) -> List[PaymentReminder]:
        return [r for r in reminders if r.is_overdue(today)]
