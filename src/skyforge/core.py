from collections.abc import Awaitable, Callable

from tenacity import stop_after_attempt, wait_exponential

# Coroutine used for every wait; asyncio.sleep outside of tests
Sleep = Callable[[float], Awaitable[None]]

# Shared retry configuration for idempotent read calls
# usage: @retry(**RETRY_CONFIG)
RETRY_CONFIG = {
    "stop": stop_after_attempt(3),
    "wait": wait_exponential(multiplier=1, min=4, max=10),
    "reraise": True,
}

# Projects created by skyforge are named <prefix><cluster name>
PROJECT_PREFIX = "npme-"

# Enabled before billing is associated
BASELINE_SERVICES = [
    "servicemanagement.googleapis.com",
    "cloudapis.googleapis.com",
]

# Enabled once billing is in place; order matters
SUPPORTING_SERVICES = [
    "compute.googleapis.com",
    "container.googleapis.com",
    "storage-component.googleapis.com",
    "storage-api.googleapis.com",
]

BILLING_SERVICE = "cloudbilling.googleapis.com"

# Project-level roles granted to the cluster service account
CLUSTER_ROLES = [
    "roles/logging.privateLogViewer",
    "roles/monitoring.metricWriter",
    "roles/monitoring.viewer",
    "roles/storage.admin",
    "roles/storage.objectAdmin",
    "roles/storage.objectCreator",
    "roles/storage.objectViewer",
]

READER_ROLE = "roles/storage.legacyBucketReader"
WRITER_ROLE = "roles/storage.legacyBucketWriter"

ACCOUNT_DISPLAY_NAME = "npme kubernetes service account"

# Cluster creation fails with this text while the project's APIs are still warming up
RACE_MARKER = "wait a few minutes"
RACE_RETRY_SECONDS = 60
RACE_MAX_ATTEMPTS = 30

# Readiness polling backoff (seconds)
POLL_INITIAL_WAIT = 5
POLL_MULTIPLIER = 1.5
POLL_MAX_WAIT = 60

# Operation statuses that mean "not finished yet"
PENDING_STATUSES = frozenset(
    {
        None,
        "PENDING",
        "PROVISIONING",
        "RECONCILING",
        "STATUS_UNSPECIFIED",
        "RUNNING",
    }
)

# Terminal statuses that mean the operation did not succeed
FAILED_STATUSES = frozenset({"ABORTING"})
