"""User builder: email keying, skipped principals, grants from cached profile."""

from tests.helpers import FakeResponse, nodes_page
from wiz_access.access_model import ResourceId, SyncOpAttrs, UserStatus, UserTrait
from wiz_access.client import USERS_WITH_RELATIONS_QUERY
from wiz_access.resources.users import UserBuilder

USERS = [
    {
        "id": "u1",
        "name": "Ann",
        "email": "ann@example.com",
        "effectiveRole": {"id": "r-admin", "name": "Admin"},
        "effectiveAssignedProjects": [{"id": "p1", "name": "One"}, {"id": "p2", "name": "Two"}],
    },
    {"id": "u2", "name": "No Mail", "email": ""},
    {"id": "u3", "name": "Null Mail", "email": None},
    {"id": "u4", "name": "", "email": "bob@example.com", "effectiveRole": None,
     "effectiveAssignedProjects": []},
]


def test_list_skips_users_without_email(make_client):
    client, _ = make_client([nodes_page("userAccounts", USERS, True, "next")], user_relations="on")
    resources, results = UserBuilder(client).list(None, SyncOpAttrs())

    assert len(resources) == len(USERS) - 2
    assert [r.id for r in resources] == [
        ResourceId("user", "ann@example.com"),
        ResourceId("user", "bob@example.com"),
    ]
    assert resources[1].display_name == "bob@example.com"
    assert results.next_page_token == "next"


def test_list_caches_role_and_projects_in_profile(make_client):
    client, _ = make_client([nodes_page("userAccounts", USERS)], user_relations="on")
    resources, results = UserBuilder(client).list(None, SyncOpAttrs())

    trait = resources[0].trait
    assert isinstance(trait, UserTrait)
    assert trait.email == "ann@example.com"
    assert trait.profile == {"role_id": "r-admin", "project_ids": ["p1", "p2"]}
    assert resources[1].trait.profile == {}
    assert results.next_page_token == ""


def test_list_is_idempotent(make_client):
    page = nodes_page("userAccounts", USERS, True, "c2")
    client, _ = make_client([page, page], user_relations="on")
    builder = UserBuilder(client)
    first = builder.list(None, SyncOpAttrs(page_token="c1"))
    second = builder.list(None, SyncOpAttrs(page_token="c1"))
    assert first == second


def test_grants_from_profile(make_client):
    client, session = make_client([nodes_page("userAccounts", USERS)], user_relations="on")
    builder = UserBuilder(client)
    resources, _ = builder.list(None, SyncOpAttrs())

    grants, results = builder.grants(resources[0], SyncOpAttrs())
    assert {(g.resource, g.slug) for g in grants} == {
        (ResourceId("role", "r-admin"), "member"),
        (ResourceId("project", "p1"), "member"),
        (ResourceId("project", "p2"), "member"),
    }
    assert all(g.principal == ResourceId("user", "ann@example.com") for g in grants)
    assert results.next_page_token == ""
    # Grants come from the cached profile, not another fetch
    assert len(session.calls) == 1


def test_skipped_users_never_get_grants(make_client):
    client, _ = make_client([nodes_page("userAccounts", USERS)], user_relations="on")
    builder = UserBuilder(client)
    resources, _ = builder.list(None, SyncOpAttrs())
    principals = {
        g.principal.resource
        for r in resources
        for g in builder.grants(r, SyncOpAttrs())[0]
    }
    assert principals == {"ann@example.com"}


def test_role_grants_can_be_left_to_role_builder(make_client):
    client, _ = make_client([nodes_page("userAccounts", USERS)], user_relations="on")
    builder = UserBuilder(client, emit_role_grants=False)
    resources, _ = builder.list(None, SyncOpAttrs())
    grants, _ = builder.grants(resources[0], SyncOpAttrs())
    assert {g.resource.resource_type for g in grants} == {"project"}


def test_grants_degrade_when_relations_unavailable(make_client):
    def handler(body):
        if body["query"] == USERS_WITH_RELATIONS_QUERY:
            return FakeResponse(200, {"errors": [{"message": "not authorized"}]})
        return nodes_page("userAccounts", [{"id": "u1", "email": "ann@example.com"}])

    client, _ = make_client(handler=handler, user_relations="auto")
    builder = UserBuilder(client)
    resources, _ = builder.list(None, SyncOpAttrs())

    grants, results = builder.grants(resources[0], SyncOpAttrs())
    assert grants == []
    assert results.annotations[0]["type"] == "capability_gap"
    assert results.annotations[0]["capability"] == "user_relations"


def test_user_without_assignments_is_not_a_gap(make_client):
    client, _ = make_client([nodes_page("userAccounts", USERS)], user_relations="on")
    builder = UserBuilder(client)
    resources, _ = builder.list(None, SyncOpAttrs())
    grants, results = builder.grants(resources[1], SyncOpAttrs())
    assert grants == []
    assert results.annotations == []


def test_every_synced_account_is_enabled(make_client):
    client, _ = make_client([nodes_page("userAccounts", USERS)], user_relations="on")
    resources, _ = UserBuilder(client).list(None, SyncOpAttrs())
    assert {r.trait.status for r in resources} == {UserStatus.ENABLED}
    assert list(UserStatus) == [UserStatus.ENABLED]
