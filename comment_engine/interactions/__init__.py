"""Likes, dislikes and reports on comments."""

from .models import (
    INTERACTIONS_TABLES_CQL,
    Interaction,
    InteractionType,
    Report,
    ToggleResult,
    toggle_flags,
)


__all__ = [
    "INTERACTIONS_TABLES_CQL",
    "Interaction",
    "InteractionType",
    "Report",
    "ToggleResult",
    "toggle_flags",
]
