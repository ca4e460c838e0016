"""OAuth2 client-credentials token source and the bearer-auth decorator."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import requests
from requests.auth import AuthBase

from wiz_access.errors import WizAuthError

logger = logging.getLogger("wiz_access.auth")

# Refresh this many seconds before the token actually expires
EXPIRY_MARGIN_S = 60


class ClientCredentialsTokenSource:
    """Fetches and caches a bearer token from the Wiz token endpoint.

    Wiz requires ``audience=wiz-api`` in the token request and accepts the
    client credentials in the form body. The token is cached until it is
    within EXPIRY_MARGIN_S of expiry; a lock keeps concurrent callers from
    fetching twice.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        audience: str = "wiz-api",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._audience = audience
        self._timeout = timeout
        # Separate from the API session so the bearer auth never recurses
        self._http = session or requests.Session()
        self._lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._expires_at: Optional[float] = None

    def _expired(self) -> bool:
        if self._access_token is None:
            return True
        if self._expires_at is None:
            return False
        return self._expires_at - EXPIRY_MARGIN_S <= time.time()

    def token(self) -> str:
        """Return a valid access token, fetching a new one when needed."""
        with self._lock:
            if self._expired():
                self._fetch()
            return self._access_token

    def invalidate(self) -> None:
        with self._lock:
            self._access_token = None
            self._expires_at = None

    def _fetch(self) -> None:
        logger.debug("Fetching OAuth2 token from %s", self._token_url)
        try:
            resp = self._http.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "audience": self._audience,
                },
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise WizAuthError("fetch token", f"token request failed: {exc}") from exc

        if resp.status_code != 200:
            raise WizAuthError(
                "fetch token",
                f"token request rejected with status {resp.status_code}: {resp.text[:500]}",
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise WizAuthError("fetch token", f"failed to decode token response: {exc}") from exc
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise WizAuthError("fetch token", "token response has no access_token")

        self._access_token = payload["access_token"]
        expires_in = payload.get("expires_in")
        self._expires_at = time.time() + float(expires_in) if expires_in else None
        logger.info("Obtained Wiz access token (expires_in=%s)", expires_in)


class BearerAuth(AuthBase):
    """Attach the current token to every outgoing request."""

    def __init__(self, token_source: ClientCredentialsTokenSource) -> None:
        self._token_source = token_source

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"Bearer {self._token_source.token()}"
        return request


def build_session(token_source: ClientCredentialsTokenSource) -> requests.Session:
    """Return a requests session that authenticates every call."""
    session = requests.Session()
    session.auth = BearerAuth(token_source)
    session.headers.update({
        "Content-Type": "application/json",
        "Accept": "application/json",
    })
    return session
