"""Typed views of the Wiz GraphQL collections."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, Optional, TypeVar

from wiz_access.pagination import PageInfo, PageShape, normalize_page

T = TypeVar("T")


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # fromisoformat does not accept a trailing Z before Python 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class Connection(Generic[T]):
    """One page of a collection, already normalized."""

    nodes: list[T]
    page_info: PageInfo = field(default_factory=PageInfo)

    @classmethod
    def from_payload(
        cls,
        payload,
        shape: PageShape,
        parse: Callable[[dict], T],
    ) -> "Connection[T]":
        records, page_info = normalize_page(payload, shape)
        return cls(nodes=[parse(r) for r in records], page_info=page_info)


@dataclass(frozen=True)
class UserRoleRef:
    id: str = ""
    name: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["UserRoleRef"]:
        if not data:
            return None
        return cls(id=data.get("id") or "", name=data.get("name") or "")


@dataclass(frozen=True)
class ProjectRef:
    id: str = ""
    name: str = ""


@dataclass(frozen=True)
class User:
    """A Wiz principal.

    ``id`` differs between the users and userAccounts endpoints for the same
    person, so it is never used as an identifier downstream; email is.
    effective_role / effective_projects are None when the relation fields
    were not requested or not populated.
    """

    id: str
    email: str
    name: str = ""
    effective_role: Optional[UserRoleRef] = None
    effective_projects: Optional[list[ProjectRef]] = None

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        projects = data.get("effectiveAssignedProjects")
        return cls(
            id=data.get("id") or "",
            email=(data.get("email") or "").strip(),
            name=data.get("name") or "",
            effective_role=UserRoleRef.from_dict(data.get("effectiveRole")),
            effective_projects=None if projects is None else [
                ProjectRef(id=p.get("id") or "", name=p.get("name") or "")
                for p in projects
                if p
            ],
        )


@dataclass(frozen=True)
class UserRole:
    id: str
    name: str
    description: str = ""
    scopes: list[str] = field(default_factory=list)
    builtin: bool = False
    is_project_scoped: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "UserRole":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            description=data.get("description") or "",
            scopes=list(data.get("scopes") or []),
            builtin=bool(data.get("builtin")),
            is_project_scoped=bool(data.get("isProjectScoped")),
        )


@dataclass(frozen=True)
class PrincipalRef:
    """Project owner or security champion."""

    id: str = ""
    email: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "PrincipalRef":
        return cls(id=data.get("id") or "", email=(data.get("email") or "").strip())


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    description: str = ""
    owners: list[PrincipalRef] = field(default_factory=list)
    security_champions: list[PrincipalRef] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            description=data.get("description") or "",
            owners=[PrincipalRef.from_dict(o) for o in data.get("projectOwners") or [] if o],
            security_champions=[
                PrincipalRef.from_dict(c) for c in data.get("securityChampions") or [] if c
            ],
        )


@dataclass(frozen=True)
class EntitySnapshot:
    """The cloud resource an issue is about."""

    id: str = ""
    external_id: str = ""
    cloud_platform: Optional[str] = None
    type: str = ""
    name: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "EntitySnapshot":
        data = data or {}
        return cls(
            id=data.get("id") or "",
            external_id=data.get("externalId") or "",
            cloud_platform=data.get("cloudPlatform"),
            type=data.get("type") or "",
            name=data.get("name") or "",
        )


@dataclass(frozen=True)
class Issue:
    id: str
    type: str = ""
    severity: str = ""
    status: str = ""
    created_at: Optional[datetime] = None
    rule_name: str = ""
    entity: EntitySnapshot = field(default_factory=EntitySnapshot)

    @classmethod
    def from_dict(cls, data: dict) -> "Issue":
        return cls(
            id=data.get("id") or "",
            type=data.get("type") or "",
            severity=data.get("severity") or "",
            status=data.get("status") or "",
            created_at=_parse_timestamp(data.get("createdAt")),
            rule_name=(data.get("sourceRule") or {}).get("name") or "",
            entity=EntitySnapshot.from_dict(data.get("entitySnapshot")),
        )
