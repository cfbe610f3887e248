"""Authenticated actor."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Actor:
    """The user performing an operation, as asserted by the access token."""

    id: str
    display_name: str = ""
    avatar: str | None = None
    is_admin: bool = False
    is_moderator: bool = False

    @property
    def can_moderate(self) -> bool:
        """Admins always hold moderator capability."""
        return self.is_admin or self.is_moderator

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Actor":
        return cls(
            id=str(claims["sub"]),
            display_name=claims.get("name") or "",
            avatar=claims.get("avatar"),
            is_admin=bool(claims.get("is_admin", False)),
            is_moderator=bool(claims.get("is_moderator", False)),
        )

    def to_claims(self) -> dict[str, Any]:
        return {
            "sub": self.id,
            "name": self.display_name,
            "avatar": self.avatar,
            "is_admin": self.is_admin,
            "is_moderator": self.is_moderator,
        }
