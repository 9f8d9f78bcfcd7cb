"""
Repository layer: typed access to the kos backend over HTTP.
"""

from kosan.repositories.base.api_client import ApiClient
from kosan.repositories.booking.booking_repository import BookingRepository
from kosan.repositories.payment.payment_repository import PaymentRepository

__all__ = [
    "ApiClient",
    "BookingRepository",
    "PaymentRepository",
]
