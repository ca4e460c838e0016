"""Abstract base class for all resource builders."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from wiz_access.access_model import (
    Entitlement,
    Grant,
    Resource,
    ResourceId,
    ResourceType,
    SyncOpAttrs,
    SyncOpResults,
)
from wiz_access.client import WizClient
from wiz_access.pagination import PageInfo, next_page_token, page_cursor

logger = logging.getLogger("wiz_access.builder")


class ResourceBuilder(ABC):
    """Each builder overrides list() and declares RESOURCE_TYPE.

    Every operation fetches at most one upstream page and hands back the
    token for the next one; the caller drives the paging.
    """

    RESOURCE_TYPE: ResourceType

    def __init__(self, client: WizClient) -> None:
        self.client = client

    @abstractmethod
    def list(
        self, parent_resource_id: Optional[ResourceId], attrs: SyncOpAttrs
    ) -> tuple[list[Resource], SyncOpResults]:
        """Return one page of resources of RESOURCE_TYPE."""

    def entitlements(
        self, resource: Resource, attrs: SyncOpAttrs
    ) -> tuple[list[Entitlement], SyncOpResults]:
        return [], SyncOpResults()

    def grants(
        self, resource: Resource, attrs: SyncOpAttrs
    ) -> tuple[list[Grant], SyncOpResults]:
        return [], SyncOpResults()

    # ------------------------------------------------------------------
    # Paging helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cursor(attrs: SyncOpAttrs) -> Optional[str]:
        return page_cursor(attrs.page_token)

    @staticmethod
    def _results(page_info: PageInfo) -> SyncOpResults:
        return SyncOpResults(next_page_token=next_page_token(page_info))

    def _log_page(self, operation: str, records: int, skipped: int = 0) -> None:
        logger.debug(
            "%s %s: %d records, %d skipped",
            self.RESOURCE_TYPE.id, operation, records, skipped,
            extra={
                "resource_type": self.RESOURCE_TYPE.id,
                "operation": operation,
                "records": records,
                "skipped": skipped,
            },
        )
