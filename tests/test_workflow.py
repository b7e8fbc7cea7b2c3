from unittest.mock import call

import pytest

from skyforge.config import ProvisioningSettings
from skyforge.errors import InvalidSpecError, ProvisioningError
from skyforge.events import BucketPermissionsSet, ClusterInitialized, PrerequisitesCreated
from skyforge.schemas.iam import ServiceAccount
from skyforge.schemas.operation import Operation, ProjectRef
from skyforge.workflow import Provisioner


@pytest.fixture
def events():
    return []


@pytest.fixture
def provisioner(projects, identity, clusters, buckets, events, sleep):
    return Provisioner(
        projects, identity, clusters, buckets, on_milestone=events.append, sleep=sleep
    )


@pytest.fixture
def recorder(mocker, projects, identity, clusters, buckets):
    """Collects calls from every collaborator in one ordered list."""
    manager = mocker.Mock()
    manager.attach_mock(projects.list_projects, "list_projects")
    manager.attach_mock(projects.create_project, "create_project")
    manager.attach_mock(projects.completion.wait, "wait")
    for name in (
        "enable_service",
        "assign_billing",
        "create_service_account",
        "create_credentials",
        "assign_roles",
    ):
        manager.attach_mock(getattr(identity, name), name)
    manager.attach_mock(clusters.create_cluster, "create_cluster")
    manager.attach_mock(clusters.get_operation, "get_operation")
    manager.attach_mock(buckets.get_policy, "get_policy")
    manager.attach_mock(buckets.set_policy, "set_policy")
    return manager


@pytest.mark.asyncio
async def test_create_runs_full_pipeline_in_order(
    provisioner, recorder, cluster_options, clusters, operation, identity, sleep
):
    cluster_options["project_id"] = "test"
    identity.create_service_account.return_value = ServiceAccount(email="test-k8s-sa")
    clusters.get_operation.side_effect = [
        Operation(name="operation-1", zone="us-central1-a", status="RUNNING"),
        Operation(name="operation-1", zone="us-central1-a", status="DONE"),
    ]

    result = await provisioner.create(cluster_options)

    assert [c[0] for c in recorder.mock_calls] == [
        "list_projects",
        "create_project",
        "wait",
        "enable_service",
        "enable_service",
        "enable_service",
        "assign_billing",
        "enable_service",
        "enable_service",
        "enable_service",
        "enable_service",
        "create_service_account",
        "create_credentials",
        "assign_roles",
        "get_policy",
        "set_policy",
        "create_cluster",
        "get_operation",
        "get_operation",
    ]
    assert identity.enable_service.await_args_list == [
        call("test", "servicemanagement.googleapis.com"),
        call("test", "cloudapis.googleapis.com"),
        call("test", "cloudbilling.googleapis.com"),
        call("test", "compute.googleapis.com"),
        call("test", "container.googleapis.com"),
        call("test", "storage-component.googleapis.com"),
        call("test", "storage-api.googleapis.com"),
    ]
    identity.assign_billing.assert_awaited_once_with("test", "fake-billing-account-id")
    identity.create_credentials.assert_awaited_once_with("test", "test-k8s-sa")
    assert identity.assign_roles.await_args.args[2] == "test-k8s-sa"
    assert len(identity.assign_roles.await_args.args[3]) == 7

    assert result.operation == operation
    assert result.project_id == "test"
    assert result.service_account == "test-k8s-sa"
    assert result.credentials is not None
    assert sleep.waits == [5]


@pytest.mark.asyncio
async def test_create_emits_milestones(provisioner, cluster_options, clusters, events):
    result = await provisioner.create(cluster_options)

    assert [e.name for e in events] == [
        "prerequisites-created",
        "bucket-permissions-set",
        "cluster-initialized",
    ]
    prerequisites, permissions, initialized = events
    assert isinstance(prerequisites, PrerequisitesCreated)
    assert prerequisites.provider == "gce"
    assert prerequisites.prerequisites == [
        "project-created",
        "service-apis-enabled",
        "billing-associated",
        "service-account-created",
        "account-credentials-acquired",
        "iam-roles-assigned",
    ]
    assert isinstance(permissions, BucketPermissionsSet)
    assert permissions.read_access == ["setup"]
    assert permissions.write_access == []
    assert isinstance(initialized, ClusterInitialized)
    assert initialized.kubernetes_cluster == clusters.create_cluster.await_args.args[0]
    assert (
        initialized.kubernetes_cluster["cluster"]["node_pools"][0]["config"]["service_account"]
        == result.service_account
    )


@pytest.mark.asyncio
async def test_create_defaults_project_id(provisioner, cluster_options, projects):
    del cluster_options["project_id"]

    result = await provisioner.create(cluster_options)

    assert result.project_id == "npme-test"
    projects.create_project.assert_awaited_once_with("npme-test", "npme-test", "my-org")


@pytest.mark.asyncio
async def test_create_skips_existing_project(provisioner, cluster_options, projects):
    projects.list_projects.return_value = [ProjectRef(id="test-project")]

    await provisioner.create(cluster_options)

    projects.create_project.assert_not_called()


@pytest.mark.asyncio
async def test_invalid_options_fail_before_any_call(provisioner, recorder, cluster_options):
    cluster_options["worker"]["memory"] = "lots"

    with pytest.raises(InvalidSpecError):
        await provisioner.create(cluster_options)

    assert recorder.mock_calls == []


@pytest.mark.asyncio
async def test_step_failure_aborts_pipeline(
    provisioner, cluster_options, identity, clusters, buckets, events
):
    identity.create_service_account.side_effect = RuntimeError("never ever")

    with pytest.raises(
        ProvisioningError,
        match="failed to create cluster service test-service-account with never ever",
    ):
        await provisioner.create(cluster_options)

    identity.create_credentials.assert_not_called()
    buckets.get_policy.assert_not_called()
    clusters.create_cluster.assert_not_called()
    assert events == []


@pytest.mark.asyncio
async def test_injected_settings_are_used(
    projects, identity, clusters, buckets, cluster_options, sleep
):
    settings = ProvisioningSettings(
        baseline_services=["one.googleapis.com"],
        supporting_services=[],
        cluster_roles=["roles/viewer"],
    )
    provisioner = Provisioner(
        projects, identity, clusters, buckets, settings=settings, sleep=sleep
    )

    await provisioner.create(cluster_options)

    assert [c.args[1] for c in identity.enable_service.await_args_list] == [
        "one.googleapis.com",
        "cloudbilling.googleapis.com",
    ]
    assert identity.assign_roles.await_args.args[3] == ["roles/viewer"]


def test_prepare_accepts_spec(provisioner, spec):
    assert provisioner.prepare(spec) == spec
