import pytest

from kosan.schemas.booking.booking_base import BookingRecord
from kosan.services.booking.booking_guard_service import can_create_booking

from conftest import booking_payload


def records(*statuses):
    return [
        BookingRecord.from_wire(booking_payload(id=i + 1, status_pemesanan=status))
        for i, status in enumerate(statuses)
    ]


def test_empty_history_allows_booking():
    decision = can_create_booking([])
    assert decision.allowed
    assert decision.reason is None


@pytest.mark.parametrize("active", ["Pending", "Confirmed"])
def test_active_booking_blocks(active):
    decision = can_create_booking(records("Completed", active, "Cancelled"))

    assert not decision.allowed
    assert decision.blocking_booking_id == 2
    assert decision.reason


def test_terminal_bookings_do_not_block():
    assert can_create_booking(records("Completed", "Cancelled", "Cancelled")).allowed
