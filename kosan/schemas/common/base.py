"""
Base schema classes with common configuration.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict

__all__ = [
    "BaseSchema",
    "WireRecordSchema",
    "pick",
]


class BaseSchema(BaseModel):
    """
    Base schema with common Pydantic configuration.

    All client-facing schemas inherit from this to ensure consistent
    behaviour (enum handling, whitespace stripping, assignment validation).
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        # Keep enums as Enum instances to retain full type information;
        # callers can still access `.value` if needed.
        use_enum_values=False,
        arbitrary_types_allowed=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class WireRecordSchema(BaseSchema):
    """
    Immutable record parsed from a backend payload.

    Frozen so that projections memoized on record identity stay valid.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)


def pick(data: Dict[str, Any], keys: Iterable[str], default: Optional[Any] = None) -> Any:
    """Return the first key present with a non-null value.

    The backend is inconsistent about casing and naming (``ID`` vs ``id``,
    ``payments`` vs ``pembayaran``); callers list every known spelling.
    """
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default
