"""Bearer token verification and the ``Actor`` identity."""

from .models import Actor


__all__ = ["Actor"]
