"""Project builder: Wiz projects, with owners and security champions as members."""

from __future__ import annotations

import logging
from typing import Optional

from wiz_access import resource_types
from wiz_access.access_model import (
    Entitlement,
    Grant,
    GroupTrait,
    Resource,
    ResourceId,
    SyncOpAttrs,
    SyncOpResults,
    new_assignment_entitlement,
    new_grant,
    new_resource_id,
)
from wiz_access.base_builder import ResourceBuilder
from wiz_access.models import PrincipalRef, Project

logger = logging.getLogger("wiz_access.projects")


def project_resource(project: Project) -> Resource:
    return Resource(
        id=new_resource_id(resource_types.PROJECT, project.id),
        display_name=project.name or project.id,
        description=project.description,
        trait=GroupTrait(),
    )


class ProjectBuilder(ResourceBuilder):
    RESOURCE_TYPE = resource_types.PROJECT

    def list(
        self, parent_resource_id: Optional[ResourceId], attrs: SyncOpAttrs
    ) -> tuple[list[Resource], SyncOpResults]:
        page = self.client.list_projects(self._cursor(attrs), attrs.context)

        resources: list[Resource] = []
        skipped = 0
        for project in page.nodes:
            if not project.id:
                skipped += 1
                continue
            resources.append(project_resource(project))

        self._log_page("list", len(resources), skipped)
        return resources, self._results(page.page_info)

    def entitlements(
        self, resource: Resource, attrs: SyncOpAttrs
    ) -> tuple[list[Entitlement], SyncOpResults]:
        member = new_assignment_entitlement(
            resource,
            resource_types.MEMBER,
            grantable_to=(resource_types.USER,),
            display_name=f"{resource.display_name} Project Member",
            description=f"Membership in {resource.display_name} project",
        )
        return [member], SyncOpResults()

    def grants(
        self, resource: Resource, attrs: SyncOpAttrs
    ) -> tuple[list[Grant], SyncOpResults]:
        """Member grants for the project's owners and security champions.

        Wiz has no single-project query, so this scans one page of the whole
        collection for the project and returns the next token regardless.
        The caller keeps paging until the collection is exhausted.
        """
        page = self.client.list_projects(self._cursor(attrs), attrs.context)

        grants: list[Grant] = []
        project_id = resource.id.resource
        for project in page.nodes:
            if project.id != project_id:
                continue
            grants.extend(self._member_grants(resource.id, project.owners))
            grants.extend(self._member_grants(resource.id, project.security_champions))
            break

        self._log_page("grants", len(grants))
        return grants, self._results(page.page_info)

    @staticmethod
    def _member_grants(project_id: ResourceId, principals: list[PrincipalRef]) -> list[Grant]:
        # Keyed by email to match the user builder's resource ids
        return [
            new_grant(
                project_id,
                resource_types.MEMBER,
                new_resource_id(resource_types.USER, principal.email),
            )
            for principal in principals
            if principal.email
        ]
