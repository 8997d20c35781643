"""
HTTP transport for crashpost.

A single pooled requests session is shared by every client handed out by
an HttpClientFactory.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

import requests
from requests.adapters import HTTPAdapter

if TYPE_CHECKING:
    from crashpost.config import Config

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


def static_token_provider(token: str | None) -> TokenProvider:
    """Build a token provider that always returns the same bearer token."""

    def provide() -> str | None:
        return token

    return provide


class HttpClient:
    """
    Thin wrapper around a shared requests session.

    Adds the bearer token and configured timeout to each request. Transport
    errors (requests.RequestException) propagate to the caller.
    """

    def __init__(
        self,
        session: requests.Session,
        timeout: float | None = None,
        token_provider: TokenProvider | None = None,
    ):
        self.session = session
        self.timeout = timeout
        self.token_provider = token_provider

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})

        if self.token_provider is not None:
            token = self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        if self.timeout is not None:
            kwargs.setdefault("timeout", self.timeout)

        logger.debug(f"{method} {url}")
        return self.session.request(method, url, headers=headers, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("PUT", url, **kwargs)


class HttpClientFactory:
    """
    Supplies HttpClient instances backed by one pooled session.

    Construct once at application start and pass it to the clients that
    need it.
    """

    def __init__(
        self,
        config: Config | None = None,
        token_provider: TokenProvider | None = None,
        session: requests.Session | None = None,
    ):
        self.timeout = config.request_timeout if config else None

        if token_provider is None and config is not None and config.api_token:
            token_provider = static_token_provider(config.api_token)
        self.token_provider = token_provider

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=config.pool_connections if config else 10,
                pool_maxsize=config.pool_maxsize if config else 10,
            )
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session

        self.session.headers["User-Agent"] = f"crashpost/{self._get_version()}"

    def create_client(self, authenticated: bool = True) -> HttpClient:
        """
        Create a client sharing this factory's session.

        Unauthenticated clients never send the bearer token; presigned URLs
        carry their own signature and reject a second auth mechanism.
        """
        return HttpClient(
            self.session,
            timeout=self.timeout,
            token_provider=self.token_provider if authenticated else None,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> HttpClientFactory:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_version(self) -> str:
        """Get crashpost version."""
        try:
            from crashpost import __version__

            return __version__
        except ImportError:
            return "unknown"
