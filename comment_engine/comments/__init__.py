"""Threaded comments on content targets.

Replies are one level deep: a reply to a reply is stored against the thread
root.

Note: Service and router are not exported here to avoid circular imports.
Import them directly from their modules.
"""

from .models import (
    ALLOWED_ORDERINGS,
    COMMENTS_TABLES_CQL,
    DEFAULT_ORDERING,
    Author,
    Comment,
    CommentState,
    CommentStats,
    CommentStatus,
    Page,
    paginate,
)


__all__ = [
    "ALLOWED_ORDERINGS",
    "COMMENTS_TABLES_CQL",
    "DEFAULT_ORDERING",
    "Author",
    "Comment",
    "CommentState",
    "CommentStats",
    "CommentStatus",
    "Page",
    "paginate",
]
