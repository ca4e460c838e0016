"""Shared test fixtures."""

import pytest
import requests

from tests.helpers import FakeSession
from wiz_access.client import WizClient


@pytest.fixture
def sleeps():
    """Backoff delays requested by the client under test."""
    return []


@pytest.fixture
def make_client(sleeps):
    def factory(outcomes=None, handler=None, user_relations="off", **kwargs):
        session = FakeSession(outcomes, handler)
        client = WizClient(
            "https://api.example.test/graphql",
            session,
            user_relations=user_relations,
            sleep=lambda seconds, ctx, op: sleeps.append(seconds),
            **kwargs,
        )
        return client, session
    return factory


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection reset")
