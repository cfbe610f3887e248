# Core infrastructure
from comment_engine.core.context import (
    clear_context,
    get_actor_id,
    get_context,
    get_request_id,
    set_actor_id,
    set_request_id,
    set_target,
)
from comment_engine.core.exceptions import CommentError
from comment_engine.core.logging import configure_structlog, get_logger
from comment_engine.core.middleware import RequestContextMiddleware


__all__ = [
    "CommentError",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_actor_id",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_actor_id",
    "set_request_id",
    "set_target",
]
