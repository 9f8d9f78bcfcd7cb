"""
Payment schemas package.
"""

from kosan.schemas.payment.payment_base import PaymentRecord, to_decimal
from kosan.schemas.payment.payment_proof import ProofUpload
from kosan.schemas.payment.payment_reminder import PaymentReminder

__all__ = [
    "PaymentRecord",
    "PaymentReminder",
    "ProofUpload",
    "to_decimal",
]
