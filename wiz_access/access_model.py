"""Normalized resource / entitlement / grant model handed to the sync engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from wiz_access.context import SyncContext


class Trait(str, Enum):
    USER = "TRAIT_USER"
    ROLE = "TRAIT_ROLE"
    GROUP = "TRAIT_GROUP"
    SECURITY_INSIGHT = "TRAIT_SECURITY_INSIGHT"


class UserStatus(str, Enum):
    # userAccounts exposes no status field, so every synced account is enabled
    ENABLED = "STATUS_ENABLED"


@dataclass(frozen=True)
class ResourceType:
    id: str
    display_name: str
    traits: tuple[Trait, ...]
    # Upstream permissions the credential needs to sync this type
    permissions: tuple[str, ...] = ()
    skip_entitlements: bool = False
    skip_entitlements_and_grants: bool = False


@dataclass(frozen=True)
class ResourceId:
    resource_type: str
    resource: str

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource}"


@dataclass(frozen=True)
class UserTrait:
    email: str
    email_is_primary: bool = True
    status: UserStatus = UserStatus.ENABLED
    profile: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RoleTrait:
    profile: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GroupTrait:
    profile: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SecurityInsightTrait:
    issue: str
    severity: str
    # The external resource the insight is about, and which cloud owns it
    external_resource_id: str
    app_hint: str
    observed_at: Optional[datetime] = None


AnyTrait = Union[UserTrait, RoleTrait, GroupTrait, SecurityInsightTrait]


@dataclass(frozen=True)
class Resource:
    id: ResourceId
    display_name: str
    description: str = ""
    trait: Optional[AnyTrait] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Entitlement:
    id: str
    resource: ResourceId
    slug: str
    display_name: str = ""
    description: str = ""
    grantable_to: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Grant:
    """`principal` holds `slug` on `resource`."""

    id: str
    entitlement_id: str
    resource: ResourceId
    slug: str
    principal: ResourceId

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SyncOpAttrs:
    page_token: str = ""
    context: Optional[SyncContext] = None


@dataclass
class SyncOpResults:
    next_page_token: str = ""
    annotations: list[dict[str, Any]] = field(default_factory=list)


def capability_gap(capability: str, detail: str) -> dict[str, Any]:
    """Annotation marking an empty result caused by missing access, not missing data."""
    return {"type": "capability_gap", "capability": capability, "detail": detail}


def new_resource_id(resource_type: ResourceType, object_id: str) -> ResourceId:
    if not object_id:
        raise ValueError(f"{resource_type.id} resource id must not be empty")
    return ResourceId(resource_type=resource_type.id, resource=object_id)


def entitlement_id(resource_id: ResourceId, slug: str) -> str:
    return f"{resource_id}:{slug}"


def new_assignment_entitlement(
    resource: Resource,
    slug: str,
    grantable_to: tuple[ResourceType, ...],
    display_name: str = "",
    description: str = "",
) -> Entitlement:
    return Entitlement(
        id=entitlement_id(resource.id, slug),
        resource=resource.id,
        slug=slug,
        display_name=display_name,
        description=description,
        grantable_to=tuple(rt.id for rt in grantable_to),
    )


def new_grant(resource_id: ResourceId, slug: str, principal: ResourceId) -> Grant:
    ent_id = entitlement_id(resource_id, slug)
    return Grant(
        id=f"{ent_id}:{principal}",
        entitlement_id=ent_id,
        resource=resource_id,
        slug=slug,
        principal=principal,
    )
