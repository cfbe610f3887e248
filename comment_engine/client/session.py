"""Session context handed to the client by the embedding UI process.

The comment client never logs users in; it receives a token and a callback
that obtains a fresh one.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from comment_engine.comments.schemas import AuthorResponse


TokenRefresher = Callable[[], Awaitable[str]]


@dataclass
class SessionContext:
    """Current access token plus the identity used for optimistic rendering."""

    access_token: str | None = None
    refresh: TokenRefresher | None = None
    actor_id: str = ""
    display_name: str = ""
    avatar: str | None = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def auth_headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    async def refresh_token(self) -> bool:
        """Obtain a new token through the callback.

        Returns:
            False when there is no callback or it produced no token.
        """
        if self.refresh is None:
            return False
        token = await self.refresh()
        if not token:
            return False
        self.access_token = token
        return True

    def as_author(self) -> AuthorResponse:
        return AuthorResponse(
            id=self.actor_id,
            display_name=self.display_name,
            avatar=self.avatar,
            is_admin=self.is_admin,
        )
