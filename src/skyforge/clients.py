from __future__ import annotations

from functools import lru_cache
from typing import Any

from google.cloud import container_v1, iam_admin_v1, resourcemanager_v3
from google.cloud import storage  # type: ignore # noqa: I001

# Shared Client Registry (Lazy-loaded and cached)


@lru_cache(maxsize=1)
def get_projects_client() -> Any:
    return resourcemanager_v3.ProjectsClient()


@lru_cache(maxsize=1)
def get_iam_client() -> Any:
    return iam_admin_v1.IAMClient()


@lru_cache(maxsize=1)
def get_gke_client() -> Any:
    return container_v1.ClusterManagerClient()


@lru_cache(maxsize=1)
def get_storage_client() -> Any:
    return storage.Client()


@lru_cache(maxsize=1)
def get_service_usage_client() -> Any:
    from googleapiclient import discovery

    return discovery.build("serviceusage", "v1", cache_discovery=False)


@lru_cache(maxsize=1)
def get_billing_client() -> Any:
    from googleapiclient import discovery

    return discovery.build("cloudbilling", "v1", cache_discovery=False)
