"""
Date and duration helpers for bookings.

Notes:
- Month arithmetic uses ``relativedelta``, which clamps to the last day of
  the target month: 2026-01-31 + 1 month is 2026-02-28, 2024-01-31 + 1
  month is 2024-02-29.
- The backend normalises dates instead of clamping them, so for a start on
  the 29th-31st its stored end date can land a few days into the next
  month (2026-01-31 + 1 month is stored as 2026-03-03). The client applies
  the clamping rule to every end and due date it shows, so for such starts
  its dates run up to three days earlier than the server's.
- End dates are always recomputed from the start date and the total
  duration, never by adding months to a previous end date, so repeated
  extensions do not drift (2026-01-31 + 2 months is 2026-03-31, whereas
  2026-02-28 + 1 month would be 2026-03-28).
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from kosan.core.exceptions import MalformedResponseError, ValidationError

DUE_DATE_OFFSET = timedelta(days=3)

_CENT = Decimal("0.01")


def _validate_months(months: int, field: str = "durationMonths") -> None:
    if isinstance(months, bool) or not isinstance(months, int):
        raise ValidationError(
            f"{field} must be a whole number of months",
            field_errors={field: ["must be an integer"]},
        )
    if months < 1:
        raise ValidationError(
            f"{field} must be at least 1 month",
            field_errors={field: [f"got {months}"]},
        )


def compute_end_date(start: date, months: int) -> date:
    """Move-out date: ``start`` plus ``months`` calendar months."""
    _validate_months(months)
    return start + relativedelta(months=months)


def compute_due_date(end: date) -> date:
    """Reminder threshold for extension or cancellation: three days before ``end``."""
    return end - DUE_DATE_OFFSET


def remaining_days(end: date, today: date) -> int:
    """Whole days left until ``end``; zero once the booking has ended."""
    return max((end - today).days, 0)


def compute_extension_end_date(start: date, current_months: int, extra_months: int) -> date:
    """End date after extending a booking by ``extra_months``."""
    _validate_months(current_months)
    _validate_months(extra_months, "extraMonths")
    return compute_end_date(start, current_months + extra_months)


def compute_rent_total(monthly_price: Decimal, months: int) -> Decimal:
    """Rent for ``months`` months at ``monthly_price``."""
    _validate_months(months)
    return (Decimal(monthly_price) * months).quantize(_CENT, rounding=ROUND_HALF_UP)


def compute_down_payment(total: Decimal, ratio: Decimal) -> Decimal:
    """Down payment (``dp``) share of a booking total; ``ratio`` comes from settings."""
    if total < 0:
        raise ValidationError("Total amount cannot be negative", field_errors={"total": [str(total)]})
    return (Decimal(total) * ratio).quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_wire_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Parse a backend date.

    Accepts ``YYYY-MM-DD`` strings, RFC 3339 timestamps (only the calendar
    date is kept, in the timestamp's own offset), and date/datetime objects.
    Go's zero time is treated as absent.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value)
        except ValueError as e:
            raise MalformedResponseError(f"Invalid date value: {value!r}") from e
    else:
        raise MalformedResponseError(f"Invalid date value: {value!r}")

    if parsed.year <= 1:
        return None
    return parsed.date()


def parse_wire_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a backend timestamp into an aware datetime (naive values are taken as UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.isoparse(str(value))
        except ValueError as e:
            raise MalformedResponseError(f"Invalid timestamp value: {value!r}") from e

    if parsed.year <= 1:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
