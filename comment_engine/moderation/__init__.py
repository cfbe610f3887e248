"""Moderation module.

Provides:
- Status transitions with an append-only audit trail
- Bulk and automatic moderation
- Review queue ordered by risk score
- Activity statistics

Note: ModerationEngine and the router are imported directly where needed.
"""

from .models import (
    MODERATION_TABLES_CQL,
    ModerationAction,
    ModerationRecord,
    ModerationStats,
    can_transition,
)


__all__ = [
    "MODERATION_TABLES_CQL",
    "ModerationAction",
    "ModerationRecord",
    "ModerationStats",
    "can_transition",
]
