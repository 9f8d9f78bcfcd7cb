from datetime import date
from unittest.mock import MagicMock

import pytest

from kosan.core.exceptions import ServerError, UploadError, ValidationError
from kosan.repositories.payment.payment_repository import PaymentRepository
from kosan.schemas.payment.payment_proof import ProofUpload

from conftest import reminder_payload


@pytest.fixture
def api(config) -> MagicMock:
    client = MagicMock()
    client.config = config
    return client


@pytest.fixture
def repository(api) -> PaymentRepository:
    return PaymentRepository(api)


def test_upload_sends_proof_field(repository, api, proof):
    repository.upload_payment_proof(100, proof)

    api.post.assert_called_once_with(
        "/payments/100/proof",
        files={"proof": ("transfer.png", proof.content, "image/png")},
        signal=None,
    )


def test_oversized_proof_never_leaves_the_client(repository, api):
    big = ProofUpload("big.png", b"x" * 4096, "image/png")
    with pytest.raises(UploadError):
        repository.upload_payment_proof(100, big)
    api.post.assert_not_called()


def test_backend_rejection_is_upload_error(repository, api, proof):
    api.post.side_effect = ValidationError("Invalid file type. Only images are allowed.", status_code=400)

    with pytest.raises(UploadError) as exc_info:
        repository.upload_payment_proof(100, proof)

    assert exc_info.value.message == "Invalid file type. Only images are allowed."
    assert exc_info.value.details["filename"] == "transfer.png"


def test_server_errors_are_not_relabelled(repository, api, proof):
    api.post.side_effect = ServerError("Failed to save proof locally")
    with pytest.raises(ServerError):
        repository.upload_payment_proof(100, proof)


def test_reminders_sorted_by_date(repository, api):
    api.get.return_value = [
        reminder_payload(id=2, tanggal_reminder="2026-03-05"),
        reminder_payload(id=1, tanggal_reminder="2026-02-05"),
    ]

    reminders = repository.fetch_reminders()

    assert [r.id for r in reminders] == [1, 2]
    assert reminders[0].reminder_date == date(2026, 2, 5)
    api.get.assert_called_once_with("/payments/reminders", signal=None)
