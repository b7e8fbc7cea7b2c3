import pytest

from skyforge.config import DEFAULT_SETTINGS
from skyforge.errors import ProvisioningError
from skyforge.schemas.iam import AccessPolicy, AccountCredentials, ServiceAccount
from skyforge.steps.accounts import create_cluster_service, get_account_credentials, set_roles


@pytest.mark.asyncio
async def test_create_cluster_service_failure(identity, spec):
    spec = spec.model_copy(update={"service_account": "test-sa"})
    identity.create_service_account.side_effect = RuntimeError("never ever")

    with pytest.raises(ProvisioningError) as exc:
        await create_cluster_service(identity, spec, "npme kubernetes service account")

    assert str(exc.value) == "failed to create cluster service test-sa with never ever"


@pytest.mark.asyncio
async def test_create_cluster_service_adopts_email(identity, spec):
    email = "test-project-k8s-sa@test-project.iam.gserviceaccount.com"
    identity.create_service_account.return_value = ServiceAccount(email=email)

    result = await create_cluster_service(identity, spec, "npme kubernetes service account")

    assert result.service_account == email
    assert spec.service_account == "test-service-account"
    identity.create_service_account.assert_awaited_once_with(
        "test-project", "test-service-account", "npme kubernetes service account"
    )


@pytest.mark.asyncio
async def test_create_cluster_service_without_email_keeps_spec(identity, spec):
    identity.create_service_account.return_value = ServiceAccount(email="")

    result = await create_cluster_service(identity, spec, "label")

    assert result is spec


@pytest.mark.asyncio
async def test_get_account_credentials(identity, spec):
    credentials = AccountCredentials(key_name="keys/abc", key_data={"private_key_id": "abc"})
    identity.create_credentials.return_value = credentials

    result = await get_account_credentials(identity, spec)

    assert result.credentials == credentials
    assert spec.credentials is None
    identity.create_credentials.assert_awaited_once_with(
        "test-project", "test-service-account"
    )


@pytest.mark.asyncio
async def test_get_account_credentials_failure(identity, spec):
    spec = spec.model_copy(update={"service_account": "test-account"})
    identity.create_credentials.side_effect = RuntimeError("what?")

    with pytest.raises(
        ProvisioningError, match=r"failed to get account credentials for test-account with what\?"
    ):
        await get_account_credentials(identity, spec)


@pytest.mark.asyncio
async def test_set_roles(identity, spec):
    policy = AccessPolicy(etag="bleepblorp")
    identity.assign_roles.return_value = policy

    result = await set_roles(identity, spec, DEFAULT_SETTINGS.cluster_roles)

    assert result == policy
    identity.assign_roles.assert_awaited_once_with(
        "test-project",
        "serviceAccount",
        "test-service-account",
        [
            "roles/logging.privateLogViewer",
            "roles/monitoring.metricWriter",
            "roles/monitoring.viewer",
            "roles/storage.admin",
            "roles/storage.objectAdmin",
            "roles/storage.objectCreator",
            "roles/storage.objectViewer",
        ],
    )


@pytest.mark.asyncio
async def test_set_roles_failure(identity, spec):
    spec = spec.model_copy(update={"service_account": "some-account"})
    identity.assign_roles.side_effect = RuntimeError("nope")

    with pytest.raises(ProvisioningError) as exc:
        await set_roles(identity, spec, ["roles/viewer"])

    assert str(exc.value) == "failed to assign roles to cluster service some-account with nope"
