"""
Payment reminder schemas.

Reminders are a separate read model from bookings: upcoming or overdue
instalments the tenant still has to pay.
"""

from datetime import date as Date
from decimal import Decimal
from typing import Any, Dict, Union

from pydantic import Field, ValidationError as PydanticValidationError

from kosan.core.exceptions import MalformedResponseError
from kosan.schemas.common.base import WireRecordSchema, pick
from kosan.schemas.common.enums import ReminderStatus
from kosan.schemas.common.status_map import resolve_reminder_status
from kosan.schemas.payment.payment_base import to_decimal
from kosan.utils.date_utils import parse_wire_date

__all__ = ["PaymentReminder"]


def _nested(data: Dict[str, Any], keys) -> Dict[str, Any]:
    value = pick(data, keys)
    return value if isinstance(value, dict) else {}


class PaymentReminder(WireRecordSchema):
    """Reminder for one outstanding payment."""

    id: int
    payment_id: Union[int, None] = None
    amount: Decimal = Field(Decimal("0.00"), ge=0)
    reminder_date: Date
    status: ReminderStatus
    is_sent: bool = False
    due_date: Union[Date, None] = None
    room_number: Union[str, None] = None

    def is_overdue(self, today: Date) -> bool:
        return self.status is not ReminderStatus.PAID and self.reminder_date < today

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "PaymentReminder":
        if not isinstance(data, dict):
            raise MalformedResponseError("Reminder record must be an object", details={"value": data})

        payment = _nested(data, ("pembayaran", "Pembayaran", "payment"))
        booking = _nested(payment, ("pemesanan", "Pemesanan"))
        room = _nested(booking, ("kamar", "Kamar"))

        payload = {
            "id": pick(data, ("id", "ID")),
            "payment_id": pick(data, ("pembayaran_id", "payment_id", "PembayaranID")),
            "amount": to_decimal(pick(data, ("jumlah_bayar", "amount")), "jumlah_bayar"),
            "reminder_date": parse_wire_date(pick(data, ("tanggal_reminder", "reminder_date"))),
            "status": resolve_reminder_status(pick(data, ("status_reminder", "status"))),
            "is_sent": bool(pick(data, ("is_sent",), False)),
            "due_date": parse_wire_date(pick(payment, ("tanggal_jatuh_tempo",))),
            "room_number": pick(room, ("nomor_kamar",)),
        }
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                "Reminder record has an unexpected shape",
                details={"errors": e.errors(include_url=False)},
            ) from e
