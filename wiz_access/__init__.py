"""Wiz access connector.

Authenticates against the Wiz GraphQL API, pages through users, roles,
projects and security issues, and maps them into the resource /
entitlement / grant model consumed by an access-governance sync engine.
"""

__version__ = "0.1.0"
