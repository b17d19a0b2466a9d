"""Base HTTP client shared by every gateway provider."""

import logging
from http.cookiejar import DefaultCookiePolicy
from typing import Any, Dict, Optional, Type

import requests

from .auth import AuthStrategy
from .envelopes import ResponseEnvelopeShape, failure_message, json_body
from .exceptions import AuthenticationFailed, GatewayError, TransportError
from .models import CredentialContext
from .streams import DEFAULT_CHUNK_SIZE


logger = logging.getLogger(__name__)


class GatewayClient:
    """Sends requests to a storage gateway with the provider's credential attached.

    Subclasses set ``auth_strategy`` and ``envelope`` for their provider. The
    requests session never stores cookies itself: a credential reaches the wire
    only through the :class:`CredentialContext` the client was given.
    """

    auth_strategy: AuthStrategy
    envelope: ResponseEnvelopeShape

    def __init__(
        self,
        endpoint: str,
        context: Optional[CredentialContext] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self._context = context
        self.timeout = timeout
        self.chunk_size = chunk_size

        self.session = session or requests.Session()
        self.session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    @property
    def context(self) -> CredentialContext:
        """The current credential context."""
        if self._context is None:
            raise AuthenticationFailed("Not authenticated. Call login() first.")
        return self._context

    @property
    def is_authenticated(self) -> bool:
        return self._context is not None

    def url(self, path: str) -> str:
        return f"{self.endpoint}/{path.lstrip('/')}"

    def send(
        self,
        method: str,
        url: str,
        authenticated: bool = True,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Send one request and return the raw response.

        Transport failures become :class:`TransportError`; HTTP status codes are
        left for the caller to interpret.
        """
        headers = dict(headers or {})
        if authenticated:
            headers = self.auth_strategy.attach_credential(headers, self.context)
        kwargs.setdefault("timeout", self.timeout)

        logger.debug(f"{method} {url}")
        try:
            return self.session.request(method, url, headers=headers, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

    def _make_request(
        self,
        method: str,
        path: str,
        error_cls: Type[GatewayError] = GatewayError,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> requests.Response:
        """Make a request to the gateway, raising ``error_cls`` on a non-success status."""
        response = self.send(method, self.url(path), authenticated=authenticated, **kwargs)
        if not response.ok:
            message = failure_message(response)
            logger.error(f"{method} {path} returned {response.status_code}: {message}")
            raise error_cls(message, response.status_code)
        return response

    def _request_json(
        self,
        method: str,
        path: str,
        error_cls: Type[GatewayError] = GatewayError,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        with self._make_request(method, path, error_cls, **kwargs) as response:
            return json_body(response)
