import copy

import pytest

from skyforge.config import load_options
from skyforge.schemas.iam import AccessPolicy, AccountCredentials, ServiceAccount
from skyforge.schemas.operation import Operation, ProjectRef

CLUSTER_OPTIONS = {
    "name": "test",
    "user": "admin",
    "password": "admin",
    "project_id": "test-project",
    "billing_account": "fake-billing-account-id",
    "organization_id": "my-org",
    "service_account": "test-service-account",
    "readable_buckets": ["setup"],
    "zones": ["us-central1-a"],
    "version": "1.8",
    "description": "a test cluster",
    "worker": {
        "cores": 4,
        "count": 3,
        "min": 3,
        "max": 6,
        "memory": "16GB",
        "reserved": True,
        "storage": {"persistent": "120GB"},
        "maintenance_window": "08:00",
    },
    "manager": {
        "network": {
            "authorized_cidr": [
                {"name": "one", "block": "192.168.1.0/24"},
                {"name": "two", "block": "192.168.2.0/24"},
            ]
        }
    },
    "flags": {
        "basic_auth": True,
        "client_cert": True,
        "load_balanced_http": True,
        "auto_scale": True,
        "auto_upgrade": True,
        "auto_repair": True,
        "include_dashboard": False,
        "network_policy": True,
        "legacy_authorization": False,
    },
}


@pytest.fixture
def cluster_options():
    return copy.deepcopy(CLUSTER_OPTIONS)


@pytest.fixture
def spec(cluster_options):
    return load_options(cluster_options)


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested wait."""

    def __init__(self):
        self.waits = []

    async def __call__(self, seconds):
        self.waits.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def projects(mocker):
    mock = mocker.Mock()
    completion = mocker.Mock()
    completion.wait = mocker.AsyncMock(return_value=None)
    mock.completion = completion
    mock.list_projects = mocker.AsyncMock(return_value=[])
    mock.create_project = mocker.AsyncMock(
        return_value=(ProjectRef(id="test-project", name="npme-test"), completion)
    )
    return mock


@pytest.fixture
def identity(mocker):
    mock = mocker.Mock()
    mock.enable_service = mocker.AsyncMock(return_value=None)
    mock.assign_billing = mocker.AsyncMock(return_value=True)
    mock.create_service_account = mocker.AsyncMock(
        return_value=ServiceAccount(email="test-k8s-sa")
    )
    mock.create_credentials = mocker.AsyncMock(
        return_value=AccountCredentials(key_name="keys/1", key_data={"type": "service_account"})
    )
    mock.assign_roles = mocker.AsyncMock(return_value=AccessPolicy(etag="bleepblorp"))
    return mock


@pytest.fixture
def operation():
    return Operation(name="operation-1", zone="us-central1-a")


@pytest.fixture
def clusters(mocker, operation):
    mock = mocker.Mock()
    mock.create_cluster = mocker.AsyncMock(return_value=operation)
    mock.get_operation = mocker.AsyncMock(
        return_value=Operation(name="operation-1", zone="us-central1-a", status="DONE")
    )
    return mock


@pytest.fixture
def buckets(mocker):
    mock = mocker.Mock()
    mock.get_policy = mocker.AsyncMock(
        return_value=AccessPolicy(version=1, etag="bleepblorp", bindings=[])
    )
    mock.set_policy = mocker.AsyncMock(side_effect=lambda bucket, policy: policy)
    return mock
