from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, Field


class PrerequisitesCreated(BaseModel):
    name: Literal["prerequisites-created"] = "prerequisites-created"
    provider: str = "gce"
    prerequisites: list[str] = Field(default_factory=list)


class BucketPermissionsSet(BaseModel):
    name: Literal["bucket-permissions-set"] = "bucket-permissions-set"
    read_access: list[str] = Field(default_factory=list)
    write_access: list[str] = Field(default_factory=list)


class ClusterInitialized(BaseModel):
    name: Literal["cluster-initialized"] = "cluster-initialized"
    kubernetes_cluster: dict[str, Any]


MilestoneEvent = PrerequisitesCreated | BucketPermissionsSet | ClusterInitialized

# Receives each milestone as the workflow reaches it
MilestoneCallback = Callable[[MilestoneEvent], None]

PREREQUISITES = [
    "project-created",
    "service-apis-enabled",
    "billing-associated",
    "service-account-created",
    "account-credentials-acquired",
    "iam-roles-assigned",
]
