"""Capabilities the provisioning workflow needs from the cloud platform."""

from collections.abc import Sequence
from typing import Any, Protocol

from ..schemas.iam import AccessPolicy, AccountCredentials, ServiceAccount
from ..schemas.operation import Operation, ProjectRef


class Completion(Protocol):
    async def wait(self) -> None: ...


class ProjectProvider(Protocol):
    async def list_projects(self) -> list[ProjectRef]: ...

    async def create_project(
        self, project_id: str, name: str, organization_id: str
    ) -> tuple[ProjectRef, Completion]: ...


class IdentityProvider(Protocol):
    async def enable_service(self, project_id: str, service: str) -> None: ...

    async def assign_billing(self, project_id: str, billing_account: str) -> Any: ...

    async def create_service_account(
        self, project_id: str, account_id: str, display_name: str
    ) -> ServiceAccount: ...

    async def create_credentials(
        self, project_id: str, account: str
    ) -> AccountCredentials: ...

    async def assign_roles(
        self, project_id: str, member_type: str, account: str, roles: Sequence[str]
    ) -> AccessPolicy: ...


class ClusterProvider(Protocol):
    async def create_cluster(self, request: dict[str, Any]) -> Operation: ...

    async def get_operation(
        self, project_id: str, zone: str, operation_id: str
    ) -> Operation: ...


class BucketIamProvider(Protocol):
    async def get_policy(self, bucket: str) -> AccessPolicy: ...

    async def set_policy(self, bucket: str, policy: AccessPolicy) -> AccessPolicy: ...
