"""Group flat comment rows into one-level threads."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar


class ThreadRow(Protocol):
    """Anything with an id, an optional parent id and a creation time."""

    id: Any
    created_at: datetime

    @property
    def parent_id(self) -> Any: ...


RowT = TypeVar("RowT", bound=ThreadRow)


@dataclass
class CommentThread(Generic[RowT]):
    root: RowT
    replies: list[RowT] = field(default_factory=list)


def assemble(rows: list[RowT]) -> list[CommentThread[RowT]]:
    """Build threads from a page of rows.

    Rows without a parent become roots and keep their input order. Replies
    are attached to their root and sorted by ``created_at`` ascending.
    Replies whose root is not among ``rows`` are dropped; their root lives on
    another page.
    """
    threads: list[CommentThread[RowT]] = []
    by_root: dict[Any, CommentThread[RowT]] = {}

    for row in rows:
        if row.parent_id is None:
            thread = CommentThread(root=row)
            threads.append(thread)
            by_root[row.id] = thread

    for row in rows:
        if row.parent_id is not None:
            thread = by_root.get(row.parent_id)
            if thread is not None:
                thread.replies.append(row)

    for thread in threads:
        thread.replies.sort(key=lambda r: r.created_at)

    return threads
