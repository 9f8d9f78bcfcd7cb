"""Shared fixtures: settings, wire payload factories and an in-memory backend."""

from __future__ import annotations

import base64
import json
import re
import threading
from datetime import date
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from kosan.config.settings import Settings
from kosan.core.cache import CacheManager
from kosan.core.session import CurrentUser, SessionState
from kosan.repositories.base.api_client import ApiClient
from kosan.repositories.booking.booking_repository import BookingRepository
from kosan.repositories.payment.payment_repository import PaymentRepository
from kosan.schemas.payment.payment_proof import ProofUpload
from kosan.services.booking.booking_service import BookingService

BASE_URL = "http://test.local/api"
TODAY = date(2026, 2, 10)
# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00" + b"\x00" * 32


def make_response(status_code: int, body: Any = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    return response


def room_payload(**overrides: Any) -> Dict[str, Any]:
    data = {
        "id": 7,
        "nomor_kamar": "A-07",
        "tipe_kamar": "Standard",
        "floor": 1,
        "harga_per_bulan": 1500000,
        "image_url": "/uploads/rooms/a07.jpg",
    }
    data.update(overrides)
    return data


def payment_payload(**overrides: Any) -> Dict[str, Any]:
    data = {
        "id": 100,
        "pemesanan_id": 1,
        "jumlah_bayar": 1500000,
        "status_pembayaran": "Pending",
        "metode_pembayaran": "transfer",
        "tipe_pembayaran": "full",
        "bukti_transfer": "",
        "tanggal_bayar": None,
        "created_at": "2026-01-20T10:00:00Z",
    }
    data.update(overrides)
    return data


def booking_payload(**overrides: Any) -> Dict[str, Any]:
    data = {
        "id": 1,
        "kamar_id": 7,
        "kamar": room_payload(),
        "tanggal_mulai": "2026-01-31T00:00:00Z",
        "durasi_sewa": 1,
        "status_pemesanan": "Pending",
        "total_bayar": 0,
        "payments": [payment_payload()],
        "created_at": "2026-01-20T10:00:00Z",
    }
    data.update(overrides)
    return data


def reminder_payload(**overrides: Any) -> Dict[str, Any]:
    data = {
        "id": 1,
        "pembayaran_id": 100,
        "jumlah_bayar": 1050000,
        "tanggal_reminder": "2026-02-05T00:00:00Z",
        "status_reminder": "Pending",
        "is_sent": False,
        "pembayaran": {
            "id": 100,
            "tanggal_jatuh_tempo": "2026-02-08T00:00:00Z",
            "pemesanan": {"id": 1, "kamar": {"nomor_kamar": "A-07"}},
        },
    }
    data.update(overrides)
    return data


class FakeBackend:
    """
    In-memory stand-in for the kos backend, used as the ``http`` session.

    Enforces one active booking per tenant under a lock, the way the real
    backend's create handler answers 409. ``create_barrier`` lets tests hold
    concurrent creates until all of them have passed the client-side guard.
    Requests listed in ``lose_response_for`` are applied and then time out.
    """

    def __init__(self) -> None:
        self.bookings: Dict[int, Dict[str, Any]] = {}
        self.reminders: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.fail_upload_with: Optional[int] = None
        self.create_barrier: Optional[threading.Barrier] = None
        self.lose_response_for: set = set()
        self._next_booking_id = 1
        self._next_payment_id = 100
        self._lock = threading.Lock()

    def add_booking(self, **overrides: Any) -> Dict[str, Any]:
        overrides.setdefault("payments", [])
        booking = booking_payload(id=self._next_booking_id, **overrides)
        self._next_booking_id += 1
        self.bookings[booking["id"]] = booking
        return booking

    def _new_payment(self, booking_id: int, **overrides: Any) -> Dict[str, Any]:
        payment = payment_payload(id=self._next_payment_id, pemesanan_id=booking_id, **overrides)
        self._next_payment_id += 1
        return payment

    def _find_payment(self, payment_id: int) -> Optional[Dict[str, Any]]:
        for booking in self.bookings.values():
            for payment in booking["payments"]:
                if payment["id"] == payment_id:
                    return payment
        return None

    # requests.Session.request signature subset
    def request(self, method, url, json=None, data=None, files=None, timeout=None):
        path = url[len(BASE_URL):]
        self.calls.append((method, path))
        response = self._dispatch(method, path, json, files)
        if (method, path) in self.lose_response_for:
            # The write is applied but the client never sees the answer.
            raise requests.Timeout(f"read timed out on {path}")
        return response

    def _dispatch(self, method, path, json, files):
        if method == "GET" and path == "/bookings":
            return make_response(200, list(self.bookings.values()))
        if method == "GET" and path == "/payments/reminders":
            return make_response(200, self.reminders)
        if method == "POST" and path == "/bookings":
            return self._create(json)

        match = re.fullmatch(r"/bookings/(\d+)/(extend|cancel)", path)
        if method == "POST" and match:
            booking = self.bookings.get(int(match.group(1)))
            if booking is None:
                return make_response(404, {"error": "booking not found"})
            if match.group(2) == "extend":
                return self._extend(booking, json)
            return self._cancel(booking)

        match = re.fullmatch(r"/payments/(\d+)/proof", path)
        if method == "POST" and match:
            return self._upload(int(match.group(1)), files)

        return make_response(404, {"error": "route not found"})

    def _create(self, body: Dict[str, Any]):
        if self.create_barrier is not None:
            self.create_barrier.wait(timeout=5)
        with self._lock:
            if any(b["status_pemesanan"] in ("Pending", "Confirmed") for b in self.bookings.values()):
                return make_response(409, {"error": "You already have an active booking"})
            booking = booking_payload(
                id=self._next_booking_id,
                kamar_id=body["kamar_id"],
                tanggal_mulai=body["tanggal_mulai"],
                durasi_sewa=body["durasi_sewa"],
                payments=[],
            )
            self._next_booking_id += 1
            booking["payments"].append(self._new_payment(booking["id"]))
            self.bookings[booking["id"]] = booking
            return make_response(201, booking)

    def _extend(self, booking: Dict[str, Any], body: Dict[str, Any]):
        if booking["status_pemesanan"] != "Confirmed":
            return make_response(400, {"error": "only confirmed bookings can be extended"})
        payment = self._new_payment(
            booking["id"],
            jumlah_bayar=body["months"] * booking["kamar"]["harga_per_bulan"],
            metode_pembayaran=body["payment_method"],
            tipe_pembayaran="extend",
        )
        booking["payments"].append(payment)
        return make_response(201, payment)

    def _cancel(self, booking: Dict[str, Any]):
        if booking["status_pemesanan"] == "Cancelled":
            return make_response(400, {"error": "booking is already cancelled"})
        booking["status_pemesanan"] = "Cancelled"
        return make_response(200, {"message": "Booking cancelled successfully"})

    def _upload(self, payment_id: int, files: Dict[str, Any]):
        if self.fail_upload_with is not None:
            return make_response(self.fail_upload_with, {"error": "Failed to save proof locally: disk full"})
        payment = self._find_payment(payment_id)
        if payment is None:
            return make_response(404, {"error": "payment not found"})
        filename = files["proof"][0]
        payment["bukti_transfer"] = f"/uploads/proofs/{filename}"
        return make_response(200, {"message": "Payment proof uploaded successfully"})


@pytest.fixture
def config() -> Settings:
    return Settings(
        API_BASE_URL=BASE_URL + "/",
        REQUEST_TIMEOUT_SECONDS=5.0,
        MAX_PROOF_UPLOAD_SIZE=1024,
        ALLOWED_PROOF_CONTENT_TYPES=["image/jpeg", "image/png"],
        PENDING_BOOKING_EXPIRY_DAYS=7,
    )


@pytest.fixture
def session() -> SessionState:
    return SessionState(CurrentUser(id=42, username="tenant42"))


@pytest.fixture
def mock_http() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(session: SessionState, config: Settings, backend: FakeBackend) -> ApiClient:
    return ApiClient(session, config=config, http=backend)


@pytest.fixture
def booking_repository(client: ApiClient) -> BookingRepository:
    return BookingRepository(client)


@pytest.fixture
def payment_repository(client: ApiClient) -> PaymentRepository:
    return PaymentRepository(client)


@pytest.fixture
def booking_service(
    booking_repository: BookingRepository,
    payment_repository: PaymentRepository,
    session: SessionState,
    config: Settings,
) -> BookingService:
    return BookingService(
        booking_repository,
        payment_repository,
        session,
        cache=CacheManager(config=config),
        config=config,
        clock=lambda: TODAY,
    )


@pytest.fixture
def proof() -> ProofUpload:
    return ProofUpload(filename="transfer.png", content=PNG_BYTES, content_type="image/png")
