"""User builder: Wiz user accounts keyed by email, plus their role/project grants."""

from __future__ import annotations

import logging
from typing import Any, Optional

from wiz_access import resource_types
from wiz_access.access_model import (
    Grant,
    Resource,
    ResourceId,
    SyncOpAttrs,
    SyncOpResults,
    UserStatus,
    UserTrait,
    capability_gap,
    new_grant,
    new_resource_id,
)
from wiz_access.base_builder import ResourceBuilder
from wiz_access.client import WizClient
from wiz_access.models import User

logger = logging.getLogger("wiz_access.users")

PROFILE_ROLE_ID = "role_id"
PROFILE_PROJECT_IDS = "project_ids"


def user_resource(user: User) -> Resource:
    """Build the user resource. The email is the resource id.

    Role and project ids are cached in the profile so grants() does not have
    to fetch the user collection again.
    """
    profile: dict[str, Any] = {}
    if user.effective_role and user.effective_role.id:
        profile[PROFILE_ROLE_ID] = user.effective_role.id
    project_ids = [p.id for p in user.effective_projects or [] if p.id]
    if project_ids:
        profile[PROFILE_PROJECT_IDS] = project_ids

    return Resource(
        id=new_resource_id(resource_types.USER, user.email),
        display_name=user.name or user.email,
        trait=UserTrait(
            email=user.email,
            email_is_primary=True,
            status=UserStatus.ENABLED,
            profile=profile,
        ),
    )


class UserBuilder(ResourceBuilder):
    RESOURCE_TYPE = resource_types.USER

    def __init__(self, client: WizClient, emit_role_grants: bool = True) -> None:
        super().__init__(client)
        self.emit_role_grants = emit_role_grants

    def list(
        self, parent_resource_id: Optional[ResourceId], attrs: SyncOpAttrs
    ) -> tuple[list[Resource], SyncOpResults]:
        page = self.client.list_users(self._cursor(attrs), attrs.context)

        resources: list[Resource] = []
        skipped = 0
        for user in page.nodes:
            # userAccounts and users disagree on ids; without an email there
            # is no safe identifier
            if not user.email:
                skipped += 1
                continue
            resources.append(user_resource(user))

        self._log_page("list", len(resources), skipped)
        return resources, self._results(page.page_info)

    def grants(
        self, resource: Resource, attrs: SyncOpAttrs
    ) -> tuple[list[Grant], SyncOpResults]:
        if not isinstance(resource.trait, UserTrait):
            raise ValueError(f"resource {resource.id} has no user trait")

        profile = resource.trait.profile
        role_id = profile.get(PROFILE_ROLE_ID) or ""
        project_ids = profile.get(PROFILE_PROJECT_IDS) or []

        if not role_id and not project_ids:
            if self.client.user_relations_available is False:
                logger.debug(
                    "No grants for %s: user relations unavailable", resource.id,
                    extra={"resource_type": self.RESOURCE_TYPE.id, "capability": "user_relations"},
                )
                return [], SyncOpResults(annotations=[capability_gap(
                    "user_relations",
                    "effectiveRole and effectiveAssignedProjects are not readable "
                    "with the configured credential",
                )])
            return [], SyncOpResults()

        grants: list[Grant] = []
        if role_id and self.emit_role_grants:
            grants.append(new_grant(
                new_resource_id(resource_types.ROLE, role_id),
                resource_types.MEMBER,
                resource.id,
            ))
        for project_id in project_ids:
            if not project_id:
                continue
            grants.append(new_grant(
                new_resource_id(resource_types.PROJECT, project_id),
                resource_types.MEMBER,
                resource.id,
            ))

        self._log_page("grants", len(grants))
        return grants, SyncOpResults()
