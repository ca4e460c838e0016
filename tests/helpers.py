"""Scripted stand-ins for requests sessions and Wiz responses."""

import json


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Returns (or raises) scripted outcomes in order and records every call."""

    def __init__(self, outcomes=None, handler=None):
        self.outcomes = list(outcomes or [])
        self.handler = handler
        self.calls = []

    def post(self, url, json=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.handler is not None:
            outcome = self.handler(json)
        else:
            outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def ok(data):
    return FakeResponse(200, {"data": data})


def nodes_page(key, nodes, has_next=False, cursor=""):
    return ok({key: {"nodes": nodes, "pageInfo": {"hasNextPage": has_next, "endCursor": cursor}}})


def edges_page(key, nodes, has_next=False, cursor=""):
    return ok({key: {
        "edges": [{"node": n} for n in nodes],
        "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
    }})
