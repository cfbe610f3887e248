"""Async client for UIs embedding the comment section.

Wraps the REST API and keeps a local, optimistically updated copy of the
threads being displayed.
"""

from .api import CommentApi
from .factory import ClientStack, build_client
from .reconciliation import CommentClient, Mutation, PendingMutation
from .refresher import CountRefresher
from .session import SessionContext


__all__ = [
    "ClientStack",
    "CommentApi",
    "CommentClient",
    "CountRefresher",
    "Mutation",
    "PendingMutation",
    "SessionContext",
    "build_client",
]
