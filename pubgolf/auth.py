"""
Token-based auth provider.

Users are configured as a token -> {"id", "role"} table. A request is
signed in when it carries a known, unrevoked token in the Authorization
header (Bearer) or the session cookie.
"""

from typing import Any, Dict, Mapping, Optional, Set

from aiohttp import web

from .logger import get_logger
from .models import Identity

logger = get_logger(__name__)

SESSION_COOKIE = "session"


class AuthProvider:
    """Resolves the signed-in identity for a request."""

    def __init__(self, users: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._users: Dict[str, Identity] = {}
        self._revoked: Set[str] = set()
        for token, user in (users or {}).items():
            self.add_user(token, user["id"], user.get("role"))

    def add_user(self, token: str, user_id: str, role: Optional[str] = None) -> Identity:
        identity = Identity(id=user_id, role=role)
        self._users[token] = identity
        self._revoked.discard(token)
        return identity

    def _token(self, request: web.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        if header.lower().startswith("bearer "):
            return header[7:].strip() or None
        return request.cookies.get(SESSION_COOKIE) or None

    def get_current_user(self, request: web.Request) -> Optional[Identity]:
        """
        Get the identity behind a request.

        @param request: Incoming HTTP request
        @return: Identity, or None when the request is not signed in
        """
        token = self._token(request)
        if token is None or token in self._revoked:
            return None
        return self._users.get(token)

    def sign_out(self, request: web.Request) -> bool:
        """
        Revoke the request's token for the rest of this process.

        @param request: Incoming HTTP request
        @return: True if a signed-in session was ended
        """
        token = self._token(request)
        if token is None or token not in self._users or token in self._revoked:
            return False
        self._revoked.add(token)
        logger.info("Signed out %s", self._users[token].id)
        return True
