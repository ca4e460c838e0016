"""Role builder: Wiz user roles with a single member entitlement."""

from __future__ import annotations

import logging
from typing import Optional

from wiz_access import resource_types
from wiz_access.access_model import (
    Entitlement,
    Grant,
    Resource,
    ResourceId,
    RoleTrait,
    SyncOpAttrs,
    SyncOpResults,
    capability_gap,
    new_assignment_entitlement,
    new_grant,
    new_resource_id,
)
from wiz_access.base_builder import ResourceBuilder
from wiz_access.client import WizClient
from wiz_access.models import UserRole

logger = logging.getLogger("wiz_access.roles")

_RELATIONS_GAP = (
    "user-to-role assignments are not readable with the configured credential"
)


def role_resource(role: UserRole) -> Resource:
    return Resource(
        id=new_resource_id(resource_types.ROLE, role.id),
        display_name=role.name or role.id,
        description=role.description,
        trait=RoleTrait(profile={
            "description": role.description,
            "scopes": list(role.scopes),
            "builtin": role.builtin,
            "is_project_scoped": role.is_project_scoped,
        }),
    )


class RoleBuilder(ResourceBuilder):
    """Lists roles; grants are emitted here only when `emit_grants` is set.

    By default the user builder owns role grants because it already has each
    user's effective role from its own list call. Turning both on would
    produce every role grant twice.
    """

    RESOURCE_TYPE = resource_types.ROLE

    def __init__(self, client: WizClient, emit_grants: bool = False) -> None:
        super().__init__(client)
        self.emit_grants = emit_grants

    def list(
        self, parent_resource_id: Optional[ResourceId], attrs: SyncOpAttrs
    ) -> tuple[list[Resource], SyncOpResults]:
        page = self.client.list_user_roles(self._cursor(attrs), attrs.context)

        resources: list[Resource] = []
        skipped = 0
        for role in page.nodes:
            if not role.id:
                skipped += 1
                continue
            resources.append(role_resource(role))

        self._log_page("list", len(resources), skipped)
        return resources, self._results(page.page_info)

    def entitlements(
        self, resource: Resource, attrs: SyncOpAttrs
    ) -> tuple[list[Entitlement], SyncOpResults]:
        member = new_assignment_entitlement(
            resource,
            resource_types.MEMBER,
            grantable_to=(resource_types.USER,),
            display_name=f"{resource.display_name} Role Member",
            description=f"Access to {resource.display_name} role in Wiz",
        )
        return [member], SyncOpResults()

    def grants(
        self, resource: Resource, attrs: SyncOpAttrs
    ) -> tuple[list[Grant], SyncOpResults]:
        if not self.emit_grants:
            return [], SyncOpResults()
        if self.client.user_relations_available is False:
            return [], SyncOpResults(annotations=[capability_gap("user_relations", _RELATIONS_GAP)])

        # One page of users per call; the caller pages through all of them
        page = self.client.list_users(self._cursor(attrs), attrs.context)
        if self.client.user_relations_available is False:
            # The probe on this very call switched relations off
            return [], SyncOpResults(annotations=[capability_gap("user_relations", _RELATIONS_GAP)])

        role_id = resource.id.resource
        grants: list[Grant] = []
        for user in page.nodes:
            role = user.effective_role
            if not user.email or role is None:
                continue
            if role.id == role_id or (role.name and role.name == resource.display_name):
                grants.append(new_grant(
                    resource.id,
                    resource_types.MEMBER,
                    new_resource_id(resource_types.USER, user.email),
                ))

        self._log_page("grants", len(grants))
        return grants, self._results(page.page_info)
