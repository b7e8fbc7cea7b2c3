import copy
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import core
from .errors import InvalidSpecError
from .schemas.spec import ClusterSpec

# Compiled cluster defaults; caller options are merged over these
DEFAULT_OPTIONS: dict[str, Any] = {
    "user": "admin",
    "zones": ["us-central1-a"],
    "version": "1.29",
    "description": "npme kubernetes cluster",
    "readable_buckets": [],
    "writable_buckets": [],
    "worker": {
        "cores": 2,
        "count": 3,
        "memory": "7GB",
        "reserved": False,
        "storage": {"persistent": "100GB"},
    },
    "manager": {"network": {"authorized_cidr": []}},
    "flags": {
        "basic_auth": False,
        "client_cert": False,
        "load_balanced_http": True,
        "auto_scale": False,
        "auto_upgrade": True,
        "auto_repair": True,
        "include_dashboard": False,
        "network_policy": False,
        "legacy_authorization": False,
    },
}


class ProvisioningSettings(BaseModel):
    """Constants the workflow runs with. Override fields in tests or per deployment."""

    model_config = ConfigDict(frozen=True)

    project_prefix: str = core.PROJECT_PREFIX
    baseline_services: list[str] = Field(
        default_factory=lambda: list(core.BASELINE_SERVICES)
    )
    supporting_services: list[str] = Field(
        default_factory=lambda: list(core.SUPPORTING_SERVICES)
    )
    billing_service: str = core.BILLING_SERVICE
    cluster_roles: list[str] = Field(default_factory=lambda: list(core.CLUSTER_ROLES))
    reader_role: str = core.READER_ROLE
    writer_role: str = core.WRITER_ROLE
    account_display_name: str = core.ACCOUNT_DISPLAY_NAME
    race_marker: str = core.RACE_MARKER
    race_retry_seconds: float = core.RACE_RETRY_SECONDS
    race_max_attempts: int = Field(default=core.RACE_MAX_ATTEMPTS, ge=1)
    poll_initial_wait: float = core.POLL_INITIAL_WAIT
    poll_multiplier: float = core.POLL_MULTIPLIER
    poll_max_wait: float = core.POLL_MAX_WAIT


DEFAULT_SETTINGS = ProvisioningSettings()


def merge_options(
    defaults: Mapping[str, Any], opts: Mapping[str, Any] | None
) -> dict[str, Any]:
    """
    Deep-merges opts over defaults. Nested mappings merge key by key;
    anything else (including lists) in opts replaces the default outright.
    Neither input is modified.
    """
    merged = copy.deepcopy(dict(defaults))
    for key, value in (opts or {}).items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_options(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_options(options: Mapping[str, Any]) -> ClusterSpec:
    try:
        return ClusterSpec.model_validate(options)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'spec'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidSpecError(f"invalid cluster specification: {problems}") from e


def load_options(
    opts: Mapping[str, Any] | None,
    defaults: Mapping[str, Any] | None = None,
) -> ClusterSpec:
    """Merges caller options over the compiled defaults and validates the result."""
    return validate_options(
        merge_options(DEFAULT_OPTIONS if defaults is None else defaults, opts)
    )
