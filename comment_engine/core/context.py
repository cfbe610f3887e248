"""Request context tracked with contextvars.

Every request (or client operation) gets a request id; authenticated calls also
carry the acting user and, where relevant, the content target being commented
on. Log processors read these values so call sites never pass them explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)
target_var: ContextVar[str | None] = ContextVar("target", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context, generating one if missing."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_actor_id() -> str | None:
    """Get the current actor ID."""
    return actor_id_var.get()


def set_actor_id(actor_id: str | UUID | None) -> None:
    """Set the acting user for the current context."""
    actor_id_var.set(str(actor_id) if actor_id is not None else None)


def set_target(target: Any) -> None:
    """Record the content target (``TargetHandle`` or its key) being handled."""
    target_var.set(str(target) if target is not None else None)


def get_context() -> dict[str, Any]:
    """Return the non-empty context values as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    actor_id = get_actor_id()
    if actor_id:
        context["actor_id"] = actor_id

    target = target_var.get()
    if target:
        context["target"] = target

    return context


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    actor_id_var.set(None)
    target_var.set(None)
