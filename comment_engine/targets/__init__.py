"""Content target resolution."""

from .models import CONTENT_TYPE_LABELS, ContentType, TargetHandle
from .resolver import normalize_object_id, parse_content_type, resolve_target


__all__ = [
    "CONTENT_TYPE_LABELS",
    "ContentType",
    "TargetHandle",
    "normalize_object_id",
    "parse_content_type",
    "resolve_target",
]
