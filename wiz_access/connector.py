"""Connector composition root: builds the client and registers the builders."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from wiz_access.auth import ClientCredentialsTokenSource, build_session
from wiz_access.base_builder import ResourceBuilder
from wiz_access.client import WizClient
from wiz_access.config import WizConfig
from wiz_access.context import SyncContext
from wiz_access.errors import ConnectorError, ConnectorValidationError, SyncCancelled
from wiz_access.resources import InsightBuilder, ProjectBuilder, RoleBuilder, UserBuilder

logger = logging.getLogger("wiz_access.connector")


@dataclass(frozen=True)
class ConnectorMetadata:
    display_name: str
    description: str


class WizConnector:
    def __init__(self, client: WizClient, role_grants_source: str = "users") -> None:
        if role_grants_source not in ("users", "roles"):
            raise ValueError(f"unknown role grants source {role_grants_source!r}")
        self.client = client
        self.role_grants_source = role_grants_source

    @classmethod
    def from_config(cls, config: WizConfig) -> "WizConnector":
        token_source = ClientCredentialsTokenSource(
            client_id=config.client_id,
            client_secret=config.client_secret,
            token_url=config.auth_endpoint,
            audience=config.audience,
            timeout=config.request_timeout,
        )
        client = WizClient(
            api_url=config.api_url,
            session=build_session(token_source),
            request_timeout=config.request_timeout,
            user_relations=config.user_relations,
            token_source=token_source,
        )
        return cls(client, role_grants_source=config.role_grants_source)

    def resource_syncers(self) -> list[ResourceBuilder]:
        roles_own_grants = self.role_grants_source == "roles"
        return [
            UserBuilder(self.client, emit_role_grants=not roles_own_grants),
            RoleBuilder(self.client, emit_grants=roles_own_grants),
            ProjectBuilder(self.client),
            InsightBuilder(self.client),
        ]

    def metadata(self) -> ConnectorMetadata:
        return ConnectorMetadata(
            display_name="Wiz",
            description=(
                "Wiz cloud security platform connector for syncing users, "
                "roles, projects, and security insights"
            ),
        )

    def validate(self, ctx: Optional[SyncContext] = None) -> None:
        """Exercise the credentials by listing user roles."""
        try:
            self.client.list_user_roles(None, ctx)
        except SyncCancelled:
            raise
        except ConnectorError as exc:
            raise ConnectorValidationError(
                f"failed to validate Wiz API credentials: {exc}"
            ) from exc
        logger.info("Wiz API credentials validated")
