"""
Payment repository.

Proof-of-transfer uploads and the payment reminder read model.
"""

from typing import List, Optional

from kosan.core.abort import AbortSignal
from kosan.core.exceptions import UploadError, ValidationError
from kosan.core.logging import get_logger
from kosan.repositories.base.api_client import ApiClient, expect_list
from kosan.schemas.payment.payment_proof import ProofUpload
from kosan.schemas.payment.payment_reminder import PaymentReminder

logger = get_logger(__name__)


class PaymentRepository:
    """Payment endpoints of the kos backend."""

    def __init__(self, client: ApiClient):
        self.client = client

    def upload_payment_proof(
        self,
        payment_id: int,
        proof: ProofUpload,
        signal: Optional[AbortSignal] = None,
    ) -> None:
        """
        Attach a proof-of-transfer image to a payment.

        Size and type are checked locally first; a 400 from the upload
        endpoint is a file rejection and is raised as ``UploadError``.
        """
        config = self.client.config
        proof.validate(config.MAX_PROOF_UPLOAD_SIZE, config.ALLOWED_PROOF_CONTENT_TYPES)

        files = {"proof": (proof.filename, proof.content, proof.content_type)}
        try:
            self.client.post(f"/payments/{payment_id}/proof", files=files, signal=signal)
        except ValidationError as e:
            raise UploadError(e.message, filename=proof.filename, status_code=e.status_code) from e

        logger.info(
            "Payment proof uploaded",
            extra={"payment_id": payment_id, "size": proof.size, "content_type": proof.content_type},
        )

    def fetch_reminders(self, signal: Optional[AbortSignal] = None) -> List[PaymentReminder]:
        """Reminders for the tenant's outstanding payments, earliest first."""
        payload = self.client.get("/payments/reminders", signal=signal)
        reminders = [PaymentReminder.from_wire(item) for item in expect_list(payload, "reminders")]
        return sorted(reminders, key=lambda r: (r.reminder_date, r.id))
