"""GraphQL client for the Wiz API: retry/backoff, error envelopes, queries."""

from __future__ import annotations

import logging
import random
import threading
from typing import Any, Callable, Optional

import requests

from wiz_access.context import SyncContext
from wiz_access.errors import (
    RetryExhaustedError,
    WizAPIError,
    WizGraphQLError,
    WizHTTPError,
    WizResponseError,
)
from wiz_access.models import Connection, Issue, Project, User, UserRole
from wiz_access.pagination import PAGE_SIZE, PageInfo, PageShape

logger = logging.getLogger("wiz_access.client")

MAX_ATTEMPTS = 5
BASE_DELAY_S = 1.0
MAX_DELAY_S = 32.0
JITTER_FRACTION = 0.1

# Longest response body quoted in an error message
_BODY_EXCERPT = 500

# userAccounts works for service-account credentials; users does not
USERS_QUERY = """
query ListUsers($first: Int, $after: String) {
  userAccounts(first: $first, after: $after) {
    nodes {
      id
      name
      email
    }
    pageInfo {
      endCursor
      hasNextPage
    }
  }
}
"""

USERS_WITH_RELATIONS_QUERY = """
query ListUsers($first: Int, $after: String) {
  userAccounts(first: $first, after: $after) {
    nodes {
      id
      name
      email
      effectiveRole {
        id
        name
      }
      effectiveAssignedProjects {
        id
        name
      }
    }
    pageInfo {
      endCursor
      hasNextPage
    }
  }
}
"""

# userRolesV2 returns a plain list and needs no special permission
USER_ROLES_QUERY = """
query ListUserRoles($filterBy: UserRoleFilters) {
  userRolesV2(filterBy: $filterBy) {
    id
    name
    description
    scopes
    builtin
    isProjectScoped
  }
}
"""

PROJECTS_QUERY = """
query ListProjects($first: Int, $after: String) {
  projects(first: $first, after: $after) {
    edges {
      node {
        id
        name
        description
        projectOwners {
          id
          email
        }
        securityChampions {
          id
          email
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

# Server-side filter: open issues on identities only
ISSUES_QUERY = """
query ListIssues($first: Int, $after: String) {
  issues(first: $first, after: $after, filterBy: {
    status: [OPEN, IN_PROGRESS],
    relatedEntity: {
      type: [USER_ACCOUNT, SERVICE_ACCOUNT]
    }
  }) {
    edges {
      node {
        id
        type
        severity
        status
        createdAt
        sourceRule {
          name
        }
        entitySnapshot {
          id
          externalId
          cloudPlatform
          type
          name
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""


def calculate_backoff(
    attempt: int,
    base: float = BASE_DELAY_S,
    cap: float = MAX_DELAY_S,
    jitter: float = JITTER_FRACTION,
    rand: Callable[[], float] = random.random,
) -> float:
    """Delay before retrying after failed attempt `attempt` (0-indexed).

    base * 2**attempt, moved uniformly by up to +/- jitter of itself, then
    clamped to cap.
    """
    delay = base * (2 ** attempt)
    delay += delay * jitter * (2 * rand() - 1)
    return min(delay, cap)


def _excerpt(text: str) -> str:
    return text if len(text) <= _BODY_EXCERPT else text[:_BODY_EXCERPT] + "..."


class WizClient:
    """Issues one GraphQL POST per logical operation.

    Network failures and HTTP 429 are retried with jittered exponential
    backoff, at most MAX_ATTEMPTS requests in total. A 401 is retried once
    with a fresh token when a token source is attached. Everything else fails
    on the first attempt.
    """

    def __init__(
        self,
        api_url: str,
        session: requests.Session,
        request_timeout: float = 60.0,
        user_relations: str = "auto",
        sleep: Optional[Callable[[float, SyncContext, str], None]] = None,
        token_source=None,
    ) -> None:
        if not api_url:
            raise ValueError("api_url is required")
        self._api_url = api_url
        self._session = session
        self._timeout = request_timeout
        self._sleep = sleep or (lambda seconds, ctx, op: ctx.sleep(seconds, op))
        # Anything with invalidate(); a 401 drops the cached token once
        self._token_source = token_source
        # None until probed; see list_users()
        self._user_relations: Optional[bool] = {
            "on": True, "off": False, "auto": None,
        }[user_relations]
        self._relations_lock = threading.Lock()

    @property
    def user_relations_available(self) -> Optional[bool]:
        """Whether effectiveRole/effectiveAssignedProjects can be read.

        None means the probe has not run yet.
        """
        return self._user_relations

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request_timeout(self, ctx: SyncContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self._timeout
        return max(min(self._timeout, remaining), 0.001)

    def _backoff(
        self,
        attempt: int,
        operation: str,
        ctx: SyncContext,
        reason: str,
        status_code: Optional[int] = None,
    ) -> None:
        delay = calculate_backoff(attempt)
        logger.warning(
            "%s failed (%s), retrying in %.1fs (attempt %d/%d)",
            operation, reason, delay, attempt + 1, MAX_ATTEMPTS,
            extra={
                "operation": operation,
                "attempt": attempt + 1,
                "delay_s": round(delay, 3),
                "status_code": status_code,
            },
        )
        self._sleep(delay, ctx, operation)

    def execute(
        self,
        query: str,
        variables: dict[str, Any],
        operation: str,
        ctx: Optional[SyncContext] = None,
    ) -> dict[str, Any]:
        """POST one query and return its ``data`` object."""
        ctx = ctx or SyncContext.background()
        body = {"query": query, "variables": variables}

        last_error: Optional[WizAPIError] = None
        token_refreshed = False
        for attempt in range(MAX_ATTEMPTS):
            ctx.raise_if_done(operation)
            final = attempt == MAX_ATTEMPTS - 1
            try:
                resp = self._session.post(
                    self._api_url, json=body, timeout=self._request_timeout(ctx)
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                ctx.raise_if_done(operation)
                last_error = RetryExhaustedError(
                    operation,
                    f"request failed after {MAX_ATTEMPTS} attempts: {exc}",
                )
                if not final:
                    self._backoff(attempt, operation, ctx, type(exc).__name__)
                continue
            except requests.RequestException as exc:
                raise WizAPIError(operation, f"failed to execute request: {exc}") from exc

            # A cancel that landed while the request was in flight wins over
            # whatever the server answered
            ctx.raise_if_done(operation)

            if resp.status_code == 429:
                last_error = RetryExhaustedError(
                    operation,
                    f"rate limit exceeded after {MAX_ATTEMPTS} attempts: {_excerpt(resp.text)}",
                    status_code=429,
                )
                if not final:
                    self._backoff(attempt, operation, ctx, "rate limited", status_code=429)
                continue

            if (
                resp.status_code == 401
                and self._token_source is not None
                and not token_refreshed
                and not final
            ):
                # Revoked before its expiry; fetch a fresh token and try once more
                logger.warning(
                    "%s unauthorized, refreshing access token", operation,
                    extra={"operation": operation, "attempt": attempt + 1, "status_code": 401},
                )
                self._token_source.invalidate()
                token_refreshed = True
                continue

            if not 200 <= resp.status_code < 300:
                logger.error(
                    "%s failed with status %d", operation, resp.status_code,
                    extra={"operation": operation, "attempt": attempt + 1,
                           "status_code": resp.status_code},
                )
                raise WizHTTPError(operation, resp.status_code, _excerpt(resp.text))

            return self._decode(resp, operation)

        logger.error(
            "%s gave up after %d attempts", operation, MAX_ATTEMPTS,
            extra={"operation": operation, "attempt": MAX_ATTEMPTS,
                   "status_code": getattr(last_error, "status_code", None)},
        )
        raise last_error

    @staticmethod
    def _decode(resp: requests.Response, operation: str) -> dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError as exc:
            raise WizResponseError(operation, f"failed to decode response: {exc}") from exc
        if not isinstance(payload, dict):
            raise WizResponseError(operation, "response is not a JSON object")

        errors = payload.get("errors")
        if errors:
            messages = [
                (e.get("message") or str(e)) if isinstance(e, dict) else str(e)
                for e in errors
            ]
            raise WizGraphQLError(operation, messages)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise WizResponseError(operation, "response has no data object")
        return data

    @staticmethod
    def _connection(data: dict, key: str, shape: PageShape, parse, operation: str) -> Connection:
        try:
            return Connection.from_payload(data.get(key), shape, parse)
        except (ValueError, AttributeError, TypeError) as exc:
            raise WizResponseError(operation, f"malformed {key} page: {exc}") from exc

    # ------------------------------------------------------------------
    # Collections (one page per call)
    # ------------------------------------------------------------------

    def list_users(
        self, cursor: Optional[str] = None, ctx: Optional[SyncContext] = None
    ) -> Connection[User]:
        """One page of user accounts.

        With user_relations="auto" the first call asks for the relation
        fields; if Wiz answers with GraphQL errors (the credential lacks the
        permission) the capability is switched off for the life of the client
        and the page is fetched again without them.
        """
        operation = "list users"
        variables: dict[str, Any] = {"first": PAGE_SIZE}
        if cursor:
            variables["after"] = cursor

        relations = self._user_relations
        if relations is None:
            try:
                data = self.execute(USERS_WITH_RELATIONS_QUERY, variables, operation, ctx)
            except WizGraphQLError as exc:
                self._set_user_relations(False, str(exc))
                data = self.execute(USERS_QUERY, variables, operation, ctx)
            else:
                self._set_user_relations(True)
        elif relations:
            data = self.execute(USERS_WITH_RELATIONS_QUERY, variables, operation, ctx)
        else:
            data = self.execute(USERS_QUERY, variables, operation, ctx)

        return self._connection(data, "userAccounts", PageShape.NODES, User.from_dict, operation)

    def _set_user_relations(self, available: bool, reason: str = "") -> None:
        with self._relations_lock:
            if self._user_relations is not None:
                return
            self._user_relations = available
        if available:
            logger.info("User relation fields available", extra={"capability": "user_relations"})
        else:
            logger.info(
                "User relation fields unavailable for this credential, "
                "role and project grants derived from users are disabled: %s",
                reason,
                extra={"capability": "user_relations"},
            )

    def list_user_roles(
        self, cursor: Optional[str] = None, ctx: Optional[SyncContext] = None
    ) -> Connection[UserRole]:
        """All roles in one page. userRolesV2 takes no cursor, so `cursor` is ignored.

        Some API variants wrap the list in a connection. The query cannot ask
        for a next page, so such a response is still one complete page.
        """
        operation = "list user roles"
        data = self.execute(USER_ROLES_QUERY, {"filterBy": {}}, operation, ctx)
        page = self._connection(data, "userRolesV2", PageShape.FLAT, UserRole.from_dict, operation)
        if page.page_info.has_next_page:
            logger.warning(
                "%s: response reports more pages but the roles query cannot page, "
                "treating %d roles as the full collection",
                operation, len(page.nodes),
                extra={"operation": operation, "records": len(page.nodes)},
            )
            return Connection(nodes=page.nodes, page_info=PageInfo())
        return page

    def list_projects(
        self, cursor: Optional[str] = None, ctx: Optional[SyncContext] = None
    ) -> Connection[Project]:
        operation = "list projects"
        variables: dict[str, Any] = {"first": PAGE_SIZE}
        if cursor:
            variables["after"] = cursor
        data = self.execute(PROJECTS_QUERY, variables, operation, ctx)
        return self._connection(data, "projects", PageShape.EDGES, Project.from_dict, operation)

    def list_issues(
        self, cursor: Optional[str] = None, ctx: Optional[SyncContext] = None
    ) -> Connection[Issue]:
        operation = "list issues"
        variables: dict[str, Any] = {"first": PAGE_SIZE}
        if cursor:
            variables["after"] = cursor
        data = self.execute(ISSUES_QUERY, variables, operation, ctx)
        return self._connection(data, "issues", PageShape.EDGES, Issue.from_dict, operation)
