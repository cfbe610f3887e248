"""Validation and normalization of ``(content_type, object_id)`` pairs."""

import re
from uuid import UUID

from comment_engine.core.exceptions import InvalidTargetError

from .models import CONTENT_TYPE_LABELS, ContentType, TargetHandle


_DECIMAL_ID = re.compile(r"^[0-9]+$")

_ALIASES: dict[str, ContentType] = {
    **{ct.value: ct for ct in ContentType},
    **{label: ct for ct, label in CONTENT_TYPE_LABELS.items()},
}


def parse_content_type(value: str | ContentType) -> ContentType:
    """Parse a content type name or ``app_label.model`` label."""
    if isinstance(value, ContentType):
        return value
    if not isinstance(value, str):
        raise InvalidTargetError(f"Unknown content type: {value!r}")

    content_type = _ALIASES.get(value.strip().lower())
    if content_type is None:
        raise InvalidTargetError(f"Unknown content type: {value!r}")
    return content_type


def normalize_object_id(value: str | int | UUID) -> str:
    """Normalize an object id to a UUID string or a positive integer string.

    UUIDs come back in lowercase canonical form; integers without leading zeros.
    """
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, bool):
        raise InvalidTargetError(f"Invalid object id: {value!r}")
    if isinstance(value, int):
        if value <= 0:
            raise InvalidTargetError(f"Invalid object id: {value!r}")
        return str(value)
    if not isinstance(value, str):
        raise InvalidTargetError(f"Invalid object id: {value!r}")

    raw = value.strip()
    if _DECIMAL_ID.match(raw):
        number = int(raw)
        if number == 0:
            raise InvalidTargetError(f"Invalid object id: {value!r}")
        return str(number)

    try:
        return str(UUID(raw))
    except ValueError as e:
        raise InvalidTargetError(f"Invalid object id: {value!r}") from e


def resolve_target(
    content_type: str | ContentType,
    object_id: str | int | UUID,
) -> TargetHandle:
    """Validate a target and return its handle.

    Raises:
        InvalidTargetError: Unknown content type or malformed object id.
    """
    return TargetHandle(
        content_type=parse_content_type(content_type),
        object_id=normalize_object_id(object_id),
    )
