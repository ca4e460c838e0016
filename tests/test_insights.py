"""Security insight builder and cloud-provider hints."""

import pytest

from tests.helpers import edges_page
from wiz_access.access_model import ResourceId, SecurityInsightTrait, SyncOpAttrs
from wiz_access.resources.insights import InsightBuilder, detect_app_hint


@pytest.mark.parametrize("external_id, hint", [
    ("arn:aws:s3:::bucket", "aws"),
    ("arn:aws:iam::123456789012:user/bob", "aws"),
    ("/subscriptions/abc/resourceGroups/x", "azure"),
    ("//compute.googleapis.com/projects/p/zones/z/instances/i", "gcp"),
    ("projects/p/serviceAccounts/sa@p.iam.gserviceaccount.com", "gcp"),
    ("unrecognized-string", "unknown"),
    ("", "unknown"),
])
def test_detect_app_hint(external_id, hint):
    assert detect_app_hint(external_id) == hint


ISSUE = {
    "id": "iss-1",
    "type": "TOXIC_COMBINATION",
    "severity": "HIGH",
    "status": "OPEN",
    "createdAt": "2024-05-02T08:30:00Z",
    "sourceRule": {"name": "Admin without MFA"},
    "entitySnapshot": {
        "id": "snap-1",
        "externalId": "arn:aws:iam::123456789012:user/bob",
        "cloudPlatform": "AWS",
        "type": "USER_ACCOUNT",
        "name": "bob",
    },
}


def test_list_builds_insight(make_client):
    client, _ = make_client([edges_page("issues", [ISSUE], True, "more")])
    resources, results = InsightBuilder(client).list(None, SyncOpAttrs())

    assert len(resources) == 1
    insight = resources[0]
    assert insight.id == ResourceId(
        "security-insight", "iss-1:arn:aws:iam::123456789012:user/bob"
    )
    assert insight.display_name == "Admin without MFA - bob"
    assert insight.description == (
        "Wiz Security Issue: Admin without MFA (Status: OPEN, Severity: HIGH) "
        "affecting AWS resource bob"
    )
    trait = insight.trait
    assert isinstance(trait, SecurityInsightTrait)
    assert trait.issue == "[HIGH] TOXIC_COMBINATION: Admin without MFA"
    assert trait.app_hint == "aws"
    assert trait.external_resource_id == "arn:aws:iam::123456789012:user/bob"
    assert trait.observed_at.isoformat() == "2024-05-02T08:30:00+00:00"
    assert results.next_page_token == "more"


def test_unknown_platform_and_skips(make_client):
    no_platform = dict(ISSUE, id="iss-2", entitySnapshot=dict(ISSUE["entitySnapshot"], cloudPlatform=None))
    no_external = dict(ISSUE, id="iss-3", entitySnapshot=dict(ISSUE["entitySnapshot"], externalId=""))
    no_id = dict(ISSUE, id="")
    client, _ = make_client([edges_page("issues", [no_platform, no_external, no_id])])
    resources, _ = InsightBuilder(client).list(None, SyncOpAttrs())

    assert [r.id.resource for r in resources] == ["iss-2:arn:aws:iam::123456789012:user/bob"]
    assert "affecting Unknown resource" in resources[0].description


def test_issue_filter_is_server_side(make_client):
    client, session = make_client([edges_page("issues", [])])
    InsightBuilder(client).list(None, SyncOpAttrs())
    query = session.calls[0]["json"]["query"]
    assert "status: [OPEN, IN_PROGRESS]" in query
    assert "type: [USER_ACCOUNT, SERVICE_ACCOUNT]" in query


def test_no_entitlements_or_grants(make_client):
    client, session = make_client([edges_page("issues", [ISSUE])])
    builder = InsightBuilder(client)
    resources, _ = builder.list(None, SyncOpAttrs())
    assert builder.entitlements(resources[0], SyncOpAttrs())[0] == []
    assert builder.grants(resources[0], SyncOpAttrs())[0] == []
    assert len(session.calls) == 1
