"""Thread assembly."""

from .assembler import CommentThread, assemble


__all__ = ["CommentThread", "assemble"]
