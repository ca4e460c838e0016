"""Resource types published by the connector."""

from __future__ import annotations

from wiz_access.access_model import ResourceType, Trait

# Entitlements on users are skipped: users are grant subjects only
USER = ResourceType(
    id="user",
    display_name="User",
    traits=(Trait.USER,),
    permissions=("read:users",),
    skip_entitlements=True,
)

# read:users is what exposes user-to-role memberships
ROLE = ResourceType(
    id="role",
    display_name="Role",
    traits=(Trait.ROLE,),
    permissions=("read:users",),
)

PROJECT = ResourceType(
    id="project",
    display_name="Project",
    traits=(Trait.GROUP,),
    permissions=("read:projects",),
)

SECURITY_INSIGHT = ResourceType(
    id="security-insight",
    display_name="Security Insight",
    traits=(Trait.SECURITY_INSIGHT,),
    permissions=("read:issues",),
    skip_entitlements_and_grants=True,
)

ALL = (USER, ROLE, PROJECT, SECURITY_INSIGHT)

MEMBER = "member"
