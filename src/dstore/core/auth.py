"""Credential attachment strategies.

A provider picks exactly one strategy; the strategy decides how the token in a
:class:`CredentialContext` is put on an outbound request.
"""

import logging
from http.cookies import CookieError, SimpleCookie
from typing import Dict, Optional

from .exceptions import AuthenticationFailed
from .models import CredentialContext, TokenKind


logger = logging.getLogger(__name__)


class AuthStrategy:
    """Attaches a credential to request headers."""

    token_kind: TokenKind

    def attach_credential(
        self, headers: Dict[str, str], context: CredentialContext
    ) -> Dict[str, str]:
        """Return a copy of ``headers`` carrying the context's token."""
        if context.token_kind != self.token_kind:
            raise AuthenticationFailed(
                f"{type(self).__name__} cannot attach a {context.token_kind.value} token"
            )
        attached = dict(headers)
        attached.update(self._header_for(context.token))
        return attached

    def _header_for(self, token: str) -> Dict[str, str]:
        raise NotImplementedError


class CookieAuth(AuthStrategy):
    """Session cookie obtained from a login call."""

    token_kind = TokenKind.COOKIE

    def _header_for(self, token: str) -> Dict[str, str]:
        return {"Cookie": token}


class BearerAuth(AuthStrategy):
    """Static API key sent as a bearer token."""

    token_kind = TokenKind.BEARER

    def _header_for(self, token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


def cookie_token_from_header(set_cookie: Optional[str]) -> str:
    """Reduce a ``Set-Cookie`` header to the ``name=value`` pairs to send back.

    Attributes such as ``Path`` or ``Expires`` are dropped.
    """
    if not set_cookie:
        raise AuthenticationFailed("Login response has no Set-Cookie header")

    jar = SimpleCookie()
    try:
        jar.load(set_cookie)
    except CookieError as e:
        raise AuthenticationFailed(f"Malformed Set-Cookie header: {e}") from e

    pairs = [f"{name}={morsel.value}" for name, morsel in jar.items()]
    if not pairs:
        raise AuthenticationFailed("Set-Cookie header carries no cookie")
    return "; ".join(pairs)


def bearer_context(endpoint: str, api_key: Optional[str]) -> CredentialContext:
    """Build a context for providers that authenticate with a static key."""
    if not api_key:
        raise AuthenticationFailed("API key required for bearer authentication")
    logger.debug(f"Using static API key for {endpoint}")
    return CredentialContext(
        endpoint=endpoint, token=api_key, token_kind=TokenKind.BEARER
    )
