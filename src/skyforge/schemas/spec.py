import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .iam import AccountCredentials
from .operation import Operation

SIZE_REGEX = re.compile(r"^([0-9]+)(MB|GB)$")
WINDOW_REGEX = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def _check_size(value: str | None) -> str | None:
    if value is not None and not SIZE_REGEX.match(value):
        raise ValueError(f"invalid size {value!r}, expected e.g. 512MB or 16GB")
    return value


class _Spec(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class StorageSpec(_Spec):
    persistent: str | None = None

    @field_validator("persistent")
    @classmethod
    def check_persistent(cls, value: str | None) -> str | None:
        return _check_size(value)


class WorkerNetwork(_Spec):
    vpc: str | None = None
    range: str | None = None


class WorkerPoolSpec(_Spec):
    cores: int = Field(ge=1)
    count: int = Field(ge=1)
    min: int | None = Field(default=None, ge=0)
    max: int | None = Field(default=None, ge=1)
    memory: str
    reserved: bool = False
    storage: StorageSpec = Field(default_factory=StorageSpec)
    maintenance_window: str | None = None
    network: WorkerNetwork | None = None

    @field_validator("memory")
    @classmethod
    def check_memory(cls, value: str) -> str:
        return _check_size(value)  # type: ignore[return-value]

    @field_validator("maintenance_window")
    @classmethod
    def check_window(cls, value: str | None) -> str | None:
        if value is not None and not WINDOW_REGEX.match(value):
            raise ValueError(f"invalid maintenance window {value!r}, expected HH:MM")
        return value

    @model_validator(mode="after")
    def check_bounds(self) -> "WorkerPoolSpec":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"worker min {self.min} is greater than max {self.max}")
        return self


class AuthorizedNetwork(_Spec):
    name: str
    block: str


class ManagerNetwork(_Spec):
    authorized_cidr: list[AuthorizedNetwork] = Field(default_factory=list)


class ManagerSpec(_Spec):
    network: ManagerNetwork = Field(default_factory=ManagerNetwork)


class FeatureFlags(_Spec):
    basic_auth: bool = False
    client_cert: bool = False
    load_balanced_http: bool = False
    auto_scale: bool = False
    auto_upgrade: bool = False
    auto_repair: bool = False
    include_dashboard: bool = False
    network_policy: bool = False
    legacy_authorization: bool = False
    service_monitoring: bool = True
    service_logging: bool = True


class ClusterSpec(_Spec):
    """
    Everything needed to provision one cluster. Steps that resolve
    project_id, service_account, credentials or operation return a copy
    with the field filled in.
    """

    name: str = Field(min_length=1)
    user: str = "admin"
    password: str | None = None
    project_id: str | None = None
    billing_account: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)
    service_account: str = Field(min_length=1)
    readable_buckets: list[str] = Field(default_factory=list)
    writable_buckets: list[str] = Field(default_factory=list)
    zones: list[str] = Field(min_length=1)
    version: str
    description: str = ""
    worker: WorkerPoolSpec
    manager: ManagerSpec = Field(default_factory=ManagerSpec)
    flags: FeatureFlags = Field(default_factory=FeatureFlags)

    credentials: AccountCredentials | None = None
    operation: Operation | None = None
