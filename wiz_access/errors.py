"""Exception hierarchy for the connector.

Everything raised on purpose derives from ConnectorError so callers can
tell connector failures apart from programming errors.
"""

from __future__ import annotations

from typing import Optional


class ConnectorError(Exception):
    """Base class for connector failures."""


class ConfigError(ConnectorError):
    """Required configuration is missing or invalid."""


class WizAPIError(ConnectorError):
    """A call to the Wiz API failed. The message names the operation."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class WizAuthError(WizAPIError):
    """The OAuth2 token exchange was rejected."""


class WizHTTPError(WizAPIError):
    """Non-2xx, non-429 response. Never retried."""

    def __init__(self, operation: str, status_code: int, body: str) -> None:
        super().__init__(operation, f"unexpected status code {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class RetryExhaustedError(WizAPIError):
    """Rate limiting or network failures outlasted the retry budget."""

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(operation, message)
        self.status_code = status_code


class WizResponseError(WizAPIError):
    """The response body is not a usable GraphQL envelope."""


class WizGraphQLError(WizAPIError):
    """HTTP 200 carrying a non-empty ``errors`` array."""

    def __init__(self, operation: str, messages: list[str]) -> None:
        super().__init__(operation, "graphql errors: " + "; ".join(messages))
        self.messages = messages


class SyncCancelled(ConnectorError):
    """The caller cancelled the operation or its deadline passed."""

    def __init__(self, operation: str, reason: str = "cancelled") -> None:
        super().__init__(f"{operation}: {reason}")
        self.operation = operation
        self.reason = reason


class ConnectorValidationError(ConnectorError):
    """The configured credentials could not be exercised."""
