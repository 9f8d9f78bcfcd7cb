"""
Base services module.

All services report remote failures through ``ServiceResult``.
"""

from kosan.services.base.service_result import (
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

__all__ = [
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
