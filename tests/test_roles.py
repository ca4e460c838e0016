"""Role builder: flat role list, static entitlement, optional grants."""

from tests.helpers import FakeResponse, edges_page, nodes_page, ok
from wiz_access.access_model import ResourceId, SyncOpAttrs
from wiz_access.client import USER_ROLES_QUERY
from wiz_access.connector import WizConnector
from wiz_access.resources.roles import RoleBuilder
from wiz_access.runner import LocalSyncRunner

ROLES = [
    {
        "id": "r-admin",
        "name": "GlobalAdmin",
        "description": "Everything",
        "scopes": ["read:all", "write:all"],
        "builtin": True,
        "isProjectScoped": False,
    },
    {"id": "r-reader", "name": "ProjectReader", "scopes": None, "isProjectScoped": True},
]


def test_list_flat_roles_single_page(make_client):
    client, session = make_client([ok({"userRolesV2": ROLES})])
    resources, results = RoleBuilder(client).list(None, SyncOpAttrs())

    assert [r.id for r in resources] == [ResourceId("role", "r-admin"), ResourceId("role", "r-reader")]
    assert resources[0].display_name == "GlobalAdmin"
    assert resources[0].trait.profile == {
        "description": "Everything",
        "scopes": ["read:all", "write:all"],
        "builtin": True,
        "is_project_scoped": False,
    }
    assert resources[1].trait.profile["scopes"] == []
    assert results.next_page_token == ""
    assert session.calls[0]["json"]["query"] == USER_ROLES_QUERY


def test_flat_and_paginated_shapes_agree(make_client):
    flat_client, _ = make_client([ok({"userRolesV2": ROLES})])
    paged_client, _ = make_client([edges_page("userRolesV2", ROLES)])
    assert RoleBuilder(flat_client).list(None, SyncOpAttrs()) == \
        RoleBuilder(paged_client).list(None, SyncOpAttrs())


def test_paginated_shape_with_next_page_still_ends(make_client):
    paged = edges_page("userRolesV2", ROLES, True, "c1")
    client, session = make_client([paged, paged])
    builder = RoleBuilder(client)

    resources, results = builder.list(None, SyncOpAttrs())

    assert len(resources) == 2
    assert results.next_page_token == ""
    assert len(session.calls) == 1


def test_runner_syncs_paginated_roles_once(make_client):
    paged = edges_page("userRolesV2", ROLES, True, "c1")
    client, session = make_client([paged, paged])
    counts = LocalSyncRunner(WizConnector(client)).run(["role"])
    assert counts["role/resources"] == 2
    assert counts["role/entitlements"] == 2
    assert len(session.calls) == 1


def test_member_entitlement(make_client):
    client, _ = make_client([ok({"userRolesV2": ROLES})])
    builder = RoleBuilder(client)
    resources, _ = builder.list(None, SyncOpAttrs())
    entitlements, _ = builder.entitlements(resources[0], SyncOpAttrs())

    assert len(entitlements) == 1
    ent = entitlements[0]
    assert ent.slug == "member"
    assert ent.resource == ResourceId("role", "r-admin")
    assert ent.grantable_to == ("user",)
    assert ent.display_name == "GlobalAdmin Role Member"


def test_grants_off_by_default(make_client):
    client, session = make_client([ok({"userRolesV2": ROLES})])
    builder = RoleBuilder(client)
    resources, _ = builder.list(None, SyncOpAttrs())
    assert builder.grants(resources[0], SyncOpAttrs())[0] == []
    assert len(session.calls) == 1


def test_grants_from_user_pages(make_client):
    users_page_1 = nodes_page("userAccounts", [
        {"id": "u1", "email": "ann@example.com", "effectiveRole": {"id": "r-admin", "name": "GlobalAdmin"}},
        {"id": "u2", "email": "", "effectiveRole": {"id": "r-admin", "name": "GlobalAdmin"}},
        {"id": "u3", "email": "cy@example.com", "effectiveRole": {"id": "r-reader", "name": "ProjectReader"}},
    ], True, "u-next")
    users_page_2 = nodes_page("userAccounts", [
        {"id": "u4", "email": "dee@example.com", "effectiveRole": {"id": "", "name": "GlobalAdmin"}},
    ])
    client, _ = make_client(
        [ok({"userRolesV2": ROLES}), users_page_1, users_page_2], user_relations="on"
    )
    builder = RoleBuilder(client, emit_grants=True)
    resources, _ = builder.list(None, SyncOpAttrs())

    grants, results = builder.grants(resources[0], SyncOpAttrs())
    assert [g.principal for g in grants] == [ResourceId("user", "ann@example.com")]
    assert results.next_page_token == "u-next"

    grants, results = builder.grants(resources[0], SyncOpAttrs(page_token="u-next"))
    # Matched on role name when the id is missing
    assert [g.principal for g in grants] == [ResourceId("user", "dee@example.com")]
    assert results.next_page_token == ""


def test_grants_gap_when_relations_off(make_client):
    client, session = make_client([ok({"userRolesV2": ROLES})], user_relations="off")
    builder = RoleBuilder(client, emit_grants=True)
    resources, _ = builder.list(None, SyncOpAttrs())
    grants, results = builder.grants(resources[0], SyncOpAttrs())
    assert grants == []
    assert results.annotations[0]["capability"] == "user_relations"
    assert len(session.calls) == 1


def test_grants_gap_when_probe_fails(make_client):
    def handler(body):
        if "userRolesV2" in body["query"]:
            return ok({"userRolesV2": ROLES})
        if "effectiveRole" in body["query"]:
            return FakeResponse(200, {"errors": [{"message": "forbidden"}]})
        return nodes_page("userAccounts", [{"id": "u1", "email": "ann@example.com"}])

    client, _ = make_client(handler=handler, user_relations="auto")
    builder = RoleBuilder(client, emit_grants=True)
    resources, _ = builder.list(None, SyncOpAttrs())
    grants, results = builder.grants(resources[0], SyncOpAttrs())
    assert grants == []
    assert results.next_page_token == ""
    assert results.annotations[0]["type"] == "capability_gap"
