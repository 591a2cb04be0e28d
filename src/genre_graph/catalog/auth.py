"""Client-credentials authentication for the catalog API.

Tokens are cached until token_refresh_buffer seconds before they expire.
The object doubles as a requests auth hook that adds the bearer header
to requests aimed at the API host.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from urllib.parse import urlparse

import requests
from requests.auth import AuthBase, HTTPBasicAuth

from genre_graph.core.errors import AuthenticationError
from genre_graph.core.models import CatalogSettings

logger = logging.getLogger(__name__)


class ClientCredentialsAuth(AuthBase):
    """Fetches and caches an access token via the client-credentials flow."""

    def __init__(
        self,
        settings: CatalogSettings,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0
        self._api_host = urlparse(settings.api_base).netloc

    # ------------------------------------------------------------------
    # Token state
    # ------------------------------------------------------------------

    @property
    def access_token(self) -> str | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._is_token_valid()

    def expires_in(self) -> int:
        """Whole seconds until the current token expires, 0 if none."""
        if self._expires_at == 0.0:
            return 0
        return max(0, int(self._expires_at - self._clock()))

    def _is_token_valid(self) -> bool:
        return (
            self._token is not None
            and self._clock() < self._expires_at - self.settings.token_refresh_buffer
        )

    # ------------------------------------------------------------------
    # Token requests
    # ------------------------------------------------------------------

    def authenticate(self) -> str:
        """Return a valid token, requesting a new one if needed."""
        if self._is_token_valid():
            return self._token
        return self._request_new_token()

    def force_refresh(self) -> str:
        """Request a new token even if the cached one is still valid."""
        return self._request_new_token()

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0
        logger.info("Catalog auth cleared")

    def _request_new_token(self) -> str:
        try:
            response = self.session.post(
                self.settings.token_url,
                data={"grant_type": "client_credentials"},
                auth=HTTPBasicAuth(self.settings.client_id, self.settings.client_secret),
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            payload = response.json()
            token = payload["access_token"]
            expires_in = float(payload["expires_in"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as exc:
            self.clear()
            logger.error("Catalog authentication failed: %s", exc)
            raise AuthenticationError("Catalog authentication failed") from exc

        self._token = token
        self._expires_at = self._clock() + expires_in
        logger.info("Catalog auth success, expires in %ds", int(expires_in))
        return token

    # ------------------------------------------------------------------
    # requests auth hook
    # ------------------------------------------------------------------

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        if self._token and urlparse(request.url).netloc == self._api_host:
            request.headers["Authorization"] = f"Bearer {self._token}"
        return request
