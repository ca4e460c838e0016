"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev, .env files)
  - AWS Secrets Manager (aws-secret://name#key) for the client secret
  - GCP Secret Manager (gcp-secret://name) for the client secret
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from wiz_access.errors import ConfigError
from wiz_access.secrets import resolve_secret

USER_RELATIONS_MODES = ("auto", "on", "off")
ROLE_GRANT_SOURCES = ("users", "roles")


@dataclass(frozen=True)
class WizConfig:
    api_url: str
    client_id: str
    client_secret: str = field(repr=False)
    auth_endpoint: str
    audience: str = "wiz-api"
    request_timeout: float = 60.0
    # auto = probe once on the first user page, on/off = trust the operator
    user_relations: str = "auto"
    # Exactly one mapper emits role grants
    role_grants_source: str = "users"


@dataclass(frozen=True)
class SchedulerConfig:
    interval_min: int = 60
    misfire_grace_time: int = 300
    max_retries: int = 3


@dataclass(frozen=True)
class ConnectorConfig:
    wiz: WizConfig
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def _choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = os.environ.get(name, default).strip().lower() or default
    if value not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)} (got {value!r})")
    return value


def _number(name: str, default: str, cast=int):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number (got {raw!r})") from None


def load_config() -> ConnectorConfig:
    """Load configuration from environment variables.

    The four Wiz credentials are required; every missing one is reported in a
    single ConfigError. The client secret may be a cloud secret reference.
    """
    load_dotenv()

    required = {
        "WIZ_API_URL": os.environ.get("WIZ_API_URL", "").strip(),
        "WIZ_CLIENT_ID": os.environ.get("WIZ_CLIENT_ID", "").strip(),
        "WIZ_CLIENT_SECRET": os.environ.get("WIZ_CLIENT_SECRET", "").strip(),
        "WIZ_AUTH_ENDPOINT": os.environ.get("WIZ_AUTH_ENDPOINT", "").strip(),
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigError(
            "missing required environment variables: " + ", ".join(missing)
        )

    wiz = WizConfig(
        api_url=required["WIZ_API_URL"],
        client_id=required["WIZ_CLIENT_ID"],
        client_secret=resolve_secret(required["WIZ_CLIENT_SECRET"]),
        auth_endpoint=required["WIZ_AUTH_ENDPOINT"],
        audience=os.environ.get("WIZ_AUTH_AUDIENCE", "wiz-api"),
        request_timeout=_number("WIZ_REQUEST_TIMEOUT", "60", float),
        user_relations=_choice("WIZ_USER_RELATIONS", "auto", USER_RELATIONS_MODES),
        role_grants_source=_choice("WIZ_ROLE_GRANTS_SOURCE", "users", ROLE_GRANT_SOURCES),
    )

    scheduler = SchedulerConfig(
        interval_min=_number("SYNC_INTERVAL_MIN", "60"),
        misfire_grace_time=_number("SYNC_MISFIRE_GRACE_TIME", "300"),
        max_retries=_number("SYNC_MAX_RETRIES", "3"),
    )

    return ConnectorConfig(wiz=wiz, scheduler=scheduler)
