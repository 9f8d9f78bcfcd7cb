"""
Standard API response envelope.
"""

from typing import Any, List, Union

from pydantic import Field

from kosan.schemas.common.base import BaseSchema

__all__ = ["ApiEnvelope"]


class ApiEnvelope(BaseSchema):
    """``{success, data, message, errors}`` wrapper returned by the backend."""

    success: Union[bool, None] = Field(default=None, description="Success flag")
    data: Any = Field(default=None, description="Response payload")
    message: Union[str, None] = Field(default=None, description="Human-readable message")
    errors: Union[List[str], None] = Field(default=None, description="Field or rule errors")

    @classmethod
    def from_body(cls, body: Any) -> "ApiEnvelope":
        """
        Wrap a decoded JSON body.

        Some handlers still answer with a bare payload or with
        ``{"error": "..."}``; those are lifted into the same shape.
        """
        if isinstance(body, dict) and "success" in body:
            errors = body.get("errors")
            if isinstance(errors, str):
                errors = [errors]
            return cls(
                success=body.get("success"),
                data=body.get("data"),
                message=body.get("message"),
                errors=errors,
            )
        if isinstance(body, dict) and "error" in body and len(body) <= 2:
            return cls(success=False, data=None, message=str(body["error"]), errors=None)
        return cls(success=None, data=body, message=None, errors=None)
