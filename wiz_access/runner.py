"""Local sync driver: walks every page of every builder.

Stands in for the external sync engine when the connector is run from the
command line, the scheduler or a Lambda function. Records are handed to a
sink callback; nothing is written to disk.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Callable, Iterable, Optional

from wiz_access.access_model import Resource, SyncOpAttrs, SyncOpResults
from wiz_access.base_builder import ResourceBuilder
from wiz_access.connector import WizConnector
from wiz_access.context import SyncContext
from wiz_access.errors import ConnectorError

logger = logging.getLogger("wiz_access.runner")

Sink = Callable[[str, str, dict[str, Any]], None]


def json_lines_sink(stream=None) -> Sink:
    """Sink that prints one JSON object per record."""
    out = stream or sys.stdout

    def emit(resource_type: str, kind: str, record: dict[str, Any]) -> None:
        out.write(json.dumps(
            {"resource_type": resource_type, "kind": kind, "record": record},
            default=str,
        ) + "\n")

    return emit


def _discard(resource_type: str, kind: str, record: dict[str, Any]) -> None:
    pass


class LocalSyncRunner:
    def __init__(self, connector: WizConnector, sink: Optional[Sink] = None) -> None:
        self.connector = connector
        self.sink = sink or _discard

    def _paginate(
        self,
        call: Callable[[SyncOpAttrs], tuple[list, SyncOpResults]],
        ctx: SyncContext,
        label: str,
    ) -> Iterable[Any]:
        """Yield records page by page until the next token is empty."""
        token = ""
        seen: set[str] = set()
        while True:
            records, results = call(SyncOpAttrs(page_token=token, context=ctx))
            for annotation in results.annotations:
                logger.info("%s: %s", label, annotation.get("detail", annotation))
            yield from records
            token = results.next_page_token
            if not token:
                return
            if token in seen:
                raise ConnectorError(f"{label}: page token {token!r} repeated")
            seen.add(token)

    def sync_builder(self, builder: ResourceBuilder, ctx: SyncContext) -> dict[str, int]:
        rt = builder.RESOURCE_TYPE
        counts = {"resources": 0, "entitlements": 0, "grants": 0}

        resources: list[Resource] = []
        for resource in self._paginate(
            lambda attrs: builder.list(None, attrs), ctx, f"{rt.id} list"
        ):
            resources.append(resource)
            self.sink(rt.id, "resource", resource.to_dict())
        counts["resources"] = len(resources)

        if rt.skip_entitlements_and_grants:
            return counts

        for resource in resources:
            if not rt.skip_entitlements:
                for ent in self._paginate(
                    lambda attrs: builder.entitlements(resource, attrs),
                    ctx, f"{rt.id} entitlements",
                ):
                    counts["entitlements"] += 1
                    self.sink(rt.id, "entitlement", ent.to_dict())
            for grant in self._paginate(
                lambda attrs: builder.grants(resource, attrs), ctx, f"{rt.id} grants"
            ):
                counts["grants"] += 1
                self.sink(rt.id, "grant", grant.to_dict())
        return counts

    def run(
        self,
        resource_types: Optional[list[str]] = None,
        ctx: Optional[SyncContext] = None,
    ) -> dict[str, int]:
        """Sync the selected resource types (all by default).

        Returns {"<type>/<kind>": count}.
        """
        ctx = ctx or SyncContext.background()
        results: dict[str, int] = {}
        for builder in self.connector.resource_syncers():
            rt_id = builder.RESOURCE_TYPE.id
            if resource_types and rt_id not in resource_types:
                continue
            started = time.monotonic()
            counts = self.sync_builder(builder, ctx)
            for kind, n in counts.items():
                results[f"{rt_id}/{kind}"] = n
            logger.info(
                "Synced %s", rt_id,
                extra={
                    "resource_type": rt_id,
                    "records": counts["resources"],
                    "duration_s": round(time.monotonic() - started, 3),
                },
            )
        return results
