"""AWS Lambda handler for the Wiz connector.

Deployed as a Lambda function triggered by an EventBridge rule. Each
invocation runs one full sync of the selected resource type and returns the
record counts; the records themselves are not returned.

Event format:
  {}                                 -> all resource types
  {"resource_type": "project"}
"""

from __future__ import annotations

import json
import logging
import os

from wiz_access import resource_types
from wiz_access.config import load_config
from wiz_access.connector import WizConnector
from wiz_access.context import SyncContext
from wiz_access.errors import ConnectorError
from wiz_access.logging_config import configure_logging
from wiz_access.runner import LocalSyncRunner

logger = logging.getLogger("wiz_access.lambda")

# Stop this long before Lambda kills the invocation
_DEADLINE_MARGIN_MS = 10_000


def _context_for(lambda_context) -> SyncContext:
    get_remaining = getattr(lambda_context, "get_remaining_time_in_millis", None)
    if get_remaining is None:
        return SyncContext.background()
    remaining_ms = max(get_remaining() - _DEADLINE_MARGIN_MS, 0)
    return SyncContext.with_timeout(remaining_ms / 1000)


def handler(event: dict, context) -> dict:
    """Lambda entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    resource_type = (event or {}).get("resource_type", "all")
    known = {rt.id for rt in resource_types.ALL}
    if resource_type != "all" and resource_type not in known:
        return {"statusCode": 400, "body": f"Unknown resource_type {resource_type!r}"}

    logger.info("Lambda invoked for resource_type=%s", resource_type)

    try:
        config = load_config()
        connector = WizConnector.from_config(config.wiz)
        selected = None if resource_type == "all" else [resource_type]
        results = LocalSyncRunner(connector).run(selected, ctx=_context_for(context))
        logger.info("Sync complete for %s: %s", resource_type, results)
        return {
            "statusCode": 200,
            "body": json.dumps({"resource_type": resource_type, "results": results}),
        }
    except ConnectorError as exc:
        logger.error("Sync failed for %s: %s", resource_type, exc, exc_info=True)
        return {
            "statusCode": 500,
            "body": json.dumps({"resource_type": resource_type, "error": str(exc)}),
        }
