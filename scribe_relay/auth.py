"""Authenticated user sessions for backends that need a login.

WHY: The Swiftink backend uploads into a per-user storage path and calls
its API with the user's bearer token. Obtaining that session (OAuth,
magic link, token refresh) is outside this package, so backends only
depend on the small SessionProvider interface.

HOW: SessionProvider.get_session() is async and returns a Session or
None when nobody is logged in. EnvSessionProvider reads a token and user
id from the environment (.env), which is enough for the CLI and server.

RULES:
- get_session() returns None instead of raising when there is no login
- Session is immutable; the token is never logged
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Session:
    access_token: str = field(repr=False)
    user_id: str


class SessionProvider(ABC):
    """Source of the current user session."""

    @abstractmethod
    async def get_session(self) -> Optional[Session]:
        """Return the active session, or None when no user is logged in."""


class StaticSessionProvider(SessionProvider):
    """Always returns the session it was created with (which may be None)."""

    def __init__(self, session: Optional[Session]) -> None:
        self._session = session

    async def get_session(self) -> Optional[Session]:
        return self._session


class EnvSessionProvider(SessionProvider):
    """Reads SWIFTINK_ACCESS_TOKEN and SWIFTINK_USER_ID from the environment."""

    async def get_session(self) -> Optional[Session]:
        token = os.getenv("SWIFTINK_ACCESS_TOKEN", "").strip()
        user_id = os.getenv("SWIFTINK_USER_ID", "").strip()
        if not token or not user_id:
            return None
        return Session(access_token=token, user_id=user_id)
