"""Security insight builder: open Wiz issues on user and service accounts."""

from __future__ import annotations

import logging
from typing import Optional

from wiz_access import resource_types
from wiz_access.access_model import (
    Resource,
    ResourceId,
    SecurityInsightTrait,
    SyncOpAttrs,
    SyncOpResults,
    new_resource_id,
)
from wiz_access.base_builder import ResourceBuilder
from wiz_access.models import Issue

logger = logging.getLogger("wiz_access.insights")


def detect_app_hint(external_id: str) -> str:
    """Guess which cloud owns an external resource id.

    The hint lets a downstream matcher look the target up in the right
    connector's namespace.
    """
    if external_id.startswith("arn:aws:"):
        return "aws"
    if external_id.startswith("/subscriptions/"):
        return "azure"
    if external_id.startswith("//"):
        return "gcp"
    if "projects/" in external_id:
        return "gcp"
    return "unknown"


def insight_resource(issue: Issue) -> Resource:
    entity = issue.entity
    return Resource(
        # One issue references one snapshot; the pair stays unique over time
        id=new_resource_id(
            resource_types.SECURITY_INSIGHT, f"{issue.id}:{entity.external_id}"
        ),
        display_name=f"{issue.rule_name} - {entity.name}",
        description=(
            f"Wiz Security Issue: {issue.rule_name} "
            f"(Status: {issue.status}, Severity: {issue.severity}) "
            f"affecting {entity.cloud_platform or 'Unknown'} resource {entity.name}"
        ),
        trait=SecurityInsightTrait(
            issue=f"[{issue.severity}] {issue.type}: {issue.rule_name}",
            severity=issue.severity,
            external_resource_id=entity.external_id,
            app_hint=detect_app_hint(entity.external_id),
            observed_at=issue.created_at,
        ),
    )


class InsightBuilder(ResourceBuilder):
    """Insights are informational leaves: no entitlements, no grants."""

    RESOURCE_TYPE = resource_types.SECURITY_INSIGHT

    def list(
        self, parent_resource_id: Optional[ResourceId], attrs: SyncOpAttrs
    ) -> tuple[list[Resource], SyncOpResults]:
        page = self.client.list_issues(self._cursor(attrs), attrs.context)

        resources: list[Resource] = []
        skipped = 0
        for issue in page.nodes:
            if not issue.id or not issue.entity.external_id:
                skipped += 1
                continue
            resources.append(insight_resource(issue))

        self._log_page("list", len(resources), skipped)
        return resources, self._results(page.page_info)
