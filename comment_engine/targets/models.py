"""Content targets a comment can attach to.

A target is the pair ``(content_type, object_id)``. Comments are polymorphic
over six kinds of platform content; the API historically addressed them by
``app_label.model`` labels, which are still accepted on input.
"""

from dataclasses import dataclass
from enum import Enum


class ContentType(str, Enum):
    """Kinds of content that accept comments."""

    STORY = "story"
    FILM = "film"
    CONTENT = "content"
    PODCAST = "podcast"
    ANIMATION = "animation"
    SNEAKPEEK = "sneakpeek"

    @property
    def label(self) -> str:
        """The ``app_label.model`` form of this content type."""
        return CONTENT_TYPE_LABELS[self]


CONTENT_TYPE_LABELS: dict[ContentType, str] = {
    ContentType.STORY: "stories.story",
    ContentType.FILM: "films.film",
    ContentType.CONTENT: "media.content",
    ContentType.PODCAST: "podcasts.podcast",
    ContentType.ANIMATION: "animations.animation",
    ContentType.SNEAKPEEK: "sneakpeeks.sneakpeek",
}


@dataclass(frozen=True, slots=True)
class TargetHandle:
    """Validated, normalized reference to a piece of content.

    Only ``resolve_target`` should construct these from user input.
    """

    content_type: ContentType
    object_id: str

    @property
    def key(self) -> str:
        """Stable string key, used as a storage partition key."""
        return f"{self.content_type.value}:{self.object_id}"

    def __str__(self) -> str:
        return self.key

    @classmethod
    def from_key(cls, key: str) -> "TargetHandle":
        """Rebuild a handle from a stored ``key``."""
        content_type, _, object_id = key.partition(":")
        return cls(ContentType(content_type), object_id)
