"""
Google Cloud implementations of the provisioning collaborators.

The client libraries are synchronous; every call is pushed onto a worker
thread with asyncio.to_thread so the workflow's event loop keeps running.
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any

from google.api_core.iam import Policy
from google.cloud import container_v1, iam_admin_v1, resourcemanager_v3
from google.iam.v1 import iam_policy_pb2, policy_pb2
from tenacity import retry, retry_if_result, stop_after_delay, wait_fixed

from ..clients import (
    get_billing_client,
    get_gke_client,
    get_iam_client,
    get_projects_client,
    get_service_usage_client,
    get_storage_client,
)
from ..core import RETRY_CONFIG
from ..logger import logger
from ..policy import grant_all
from ..schemas.iam import AccessPolicy, AccountCredentials, PolicyBinding, ServiceAccount
from ..schemas.operation import Operation, ProjectRef


class OperationCompletion:
    """Awaitable wrapper around a google.api_core long-running operation."""

    def __init__(self, operation: Any, timeout: float | None = None) -> None:
        self.operation = operation
        self.timeout = timeout

    async def wait(self) -> None:
        await asyncio.to_thread(self.operation.result, timeout=self.timeout)


class GCPProjects:
    @retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
    def _search(self) -> list[ProjectRef]:
        client = get_projects_client()
        request = resourcemanager_v3.SearchProjectsRequest(query="state:ACTIVE")
        return [
            ProjectRef(id=p.project_id, name=p.display_name, state=p.state.name)
            for p in client.search_projects(request=request)
        ]

    async def list_projects(self) -> list[ProjectRef]:
        return await asyncio.to_thread(self._search)

    def _create(
        self, project_id: str, name: str, organization_id: str
    ) -> tuple[ProjectRef, OperationCompletion]:
        client = get_projects_client()
        project = resourcemanager_v3.Project(
            project_id=project_id,
            display_name=name,
            parent=f"organizations/{organization_id}",
        )
        operation = client.create_project(project=project)
        return ProjectRef(id=project_id, name=name), OperationCompletion(operation)

    async def create_project(
        self, project_id: str, name: str, organization_id: str
    ) -> tuple[ProjectRef, OperationCompletion]:
        return await asyncio.to_thread(self._create, project_id, name, organization_id)


def _policy_from_pb(policy: Any) -> AccessPolicy:
    return AccessPolicy(
        version=policy.version,
        etag=policy.etag,
        bindings=[
            PolicyBinding(role=b.role, members=list(b.members)) for b in policy.bindings
        ],
    )


def _policy_to_pb(policy: AccessPolicy) -> Any:
    return policy_pb2.Policy(
        version=policy.version,
        etag=policy.etag or b"",
        bindings=[
            policy_pb2.Binding(role=b.role, members=list(b.members))
            for b in policy.bindings
        ],
    )


class GCPIdentity:
    """Service usage, billing, service accounts and project IAM."""

    def _enable(self, project_id: str, service: str) -> None:
        client = get_service_usage_client()
        name = f"projects/{project_id}/services/{service}"
        operation = client.services().enable(name=name, body={}).execute()
        if not operation.get("done"):
            self._wait_for_service_operation(operation["name"])

    @retry(
        retry=retry_if_result(lambda op: not op.get("done")),
        wait=wait_fixed(2),
        stop=stop_after_delay(600),
    )  # type: ignore[untyped-decorator]
    def _wait_for_service_operation(self, name: str) -> dict[str, Any]:
        operation = get_service_usage_client().operations().get(name=name).execute()
        if operation.get("error"):
            raise RuntimeError(operation["error"].get("message", str(operation["error"])))
        return operation

    async def enable_service(self, project_id: str, service: str) -> None:
        logger.debug(f"enabling {service} on {project_id}")
        await asyncio.to_thread(self._enable, project_id, service)

    def _assign_billing(self, project_id: str, billing_account: str) -> Any:
        client = get_billing_client()
        body = {"billingAccountName": f"billingAccounts/{billing_account}"}
        return (
            client.projects()
            .updateBillingInfo(name=f"projects/{project_id}", body=body)
            .execute()
        )

    async def assign_billing(self, project_id: str, billing_account: str) -> Any:
        return await asyncio.to_thread(self._assign_billing, project_id, billing_account)

    def _create_account(
        self, project_id: str, account_id: str, display_name: str
    ) -> ServiceAccount:
        client = get_iam_client()
        request = iam_admin_v1.CreateServiceAccountRequest(
            name=f"projects/{project_id}",
            account_id=account_id,
            service_account=iam_admin_v1.ServiceAccount(display_name=display_name),
        )
        account = client.create_service_account(request=request)
        return ServiceAccount(
            email=account.email,
            unique_id=account.unique_id,
            display_name=account.display_name,
        )

    async def create_service_account(
        self, project_id: str, account_id: str, display_name: str
    ) -> ServiceAccount:
        return await asyncio.to_thread(
            self._create_account, project_id, account_id, display_name
        )

    def _create_key(self, project_id: str, account: str) -> AccountCredentials:
        client = get_iam_client()
        request = iam_admin_v1.CreateServiceAccountKeyRequest(
            name=f"projects/{project_id}/serviceAccounts/{account}"
        )
        key = client.create_service_account_key(request=request)
        # private_key_data holds the JSON key file
        return AccountCredentials(
            key_name=key.name, key_data=json.loads(key.private_key_data or b"{}")
        )

    async def create_credentials(
        self, project_id: str, account: str
    ) -> AccountCredentials:
        return await asyncio.to_thread(self._create_key, project_id, account)

    @retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
    def _get_project_policy(self, project_id: str) -> AccessPolicy:
        client = get_projects_client()
        request = iam_policy_pb2.GetIamPolicyRequest(resource=f"projects/{project_id}")
        return _policy_from_pb(client.get_iam_policy(request=request))

    def _assign_roles(
        self, project_id: str, member_type: str, account: str, roles: Sequence[str]
    ) -> AccessPolicy:
        policy = grant_all(
            self._get_project_policy(project_id), f"{member_type}:{account}", roles
        )
        request = iam_policy_pb2.SetIamPolicyRequest(
            resource=f"projects/{project_id}", policy=_policy_to_pb(policy)
        )
        return _policy_from_pb(get_projects_client().set_iam_policy(request=request))

    async def assign_roles(
        self, project_id: str, member_type: str, account: str, roles: Sequence[str]
    ) -> AccessPolicy:
        return await asyncio.to_thread(
            self._assign_roles, project_id, member_type, account, roles
        )


def _operation_from_pb(operation: Any) -> Operation:
    zone = operation.zone or operation.location
    error = operation.error.message if operation.error else ""
    return Operation(
        name=operation.name,
        zone=zone,
        status=operation.status.name,
        error=error or None,
    )


class GCPClusters:
    def _create(self, request: dict[str, Any]) -> Operation:
        client = get_gke_client()
        operation = client.create_cluster(
            request=container_v1.CreateClusterRequest(request)
        )
        return _operation_from_pb(operation)

    async def create_cluster(self, request: dict[str, Any]) -> Operation:
        return await asyncio.to_thread(self._create, request)

    @retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
    def _get(self, project_id: str, zone: str, operation_id: str) -> Operation:
        client = get_gke_client()
        name = f"projects/{project_id}/locations/{zone}/operations/{operation_id}"
        return _operation_from_pb(client.get_operation(name=name))

    async def get_operation(
        self, project_id: str, zone: str, operation_id: str
    ) -> Operation:
        return await asyncio.to_thread(self._get, project_id, zone, operation_id)


class GCPBucketIam:
    @retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
    def _get(self, bucket: str) -> AccessPolicy:
        policy = get_storage_client().bucket(bucket).get_iam_policy()
        return AccessPolicy(
            version=policy.version or 1,
            etag=policy.etag,
            bindings=[
                PolicyBinding(role=b["role"], members=sorted(b["members"]))
                for b in policy.bindings
            ],
        )

    async def get_policy(self, bucket: str) -> AccessPolicy:
        return await asyncio.to_thread(self._get, bucket)

    def _set(self, bucket: str, policy: AccessPolicy) -> AccessPolicy:
        outgoing = Policy(etag=policy.etag, version=policy.version)
        outgoing.bindings = [
            {"role": b.role, "members": set(b.members)} for b in policy.bindings
        ]
        result = get_storage_client().bucket(bucket).set_iam_policy(outgoing)
        return AccessPolicy(
            version=result.version or policy.version,
            etag=result.etag,
            bindings=[
                PolicyBinding(role=b["role"], members=sorted(b["members"]))
                for b in result.bindings
            ],
        )

    async def set_policy(self, bucket: str, policy: AccessPolicy) -> AccessPolicy:
        return await asyncio.to_thread(self._set, bucket, policy)
