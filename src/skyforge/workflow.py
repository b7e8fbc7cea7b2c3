import asyncio
from collections.abc import Mapping
from typing import Any

from .config import DEFAULT_OPTIONS, DEFAULT_SETTINGS, ProvisioningSettings, load_options
from .core import Sleep
from .events import (
    PREREQUISITES,
    BucketPermissionsSet,
    ClusterInitialized,
    MilestoneCallback,
    MilestoneEvent,
    PrerequisitesCreated,
)
from .logger import logger
from .poller import wait_for_cluster
from .providers.base import (
    BucketIamProvider,
    ClusterProvider,
    IdentityProvider,
    ProjectProvider,
)
from .schemas.spec import ClusterSpec
from .steps.accounts import create_cluster_service, get_account_credentials, set_roles
from .steps.buckets import grant_bucket_access
from .steps.cluster import create_cluster
from .steps.project import ensure_project, with_project_id
from .steps.services import enable_services, fix_billing
from .translate import get_cluster_config


class Provisioner:
    """
    Runs the full provisioning pipeline for one cluster:

    project -> baseline services -> billing -> supporting services ->
    service account -> credentials -> IAM roles -> bucket grants ->
    cluster -> readiness.

    Each step receives the spec produced by the step before it. The first
    failing step aborts the run; nothing already applied is undone.
    """

    def __init__(
        self,
        projects: ProjectProvider,
        identity: IdentityProvider,
        clusters: ClusterProvider,
        buckets: BucketIamProvider,
        settings: ProvisioningSettings | None = None,
        defaults: Mapping[str, Any] | None = None,
        on_milestone: MilestoneCallback | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.projects = projects
        self.identity = identity
        self.clusters = clusters
        self.buckets = buckets
        self.settings = settings or DEFAULT_SETTINGS
        self.defaults = DEFAULT_OPTIONS if defaults is None else defaults
        self.on_milestone = on_milestone
        self.sleep = sleep

    @classmethod
    def from_gcp(cls, **kwargs: Any) -> "Provisioner":
        """Builds a Provisioner backed by the Google Cloud client libraries."""
        from .providers.gcp import (
            GCPBucketIam,
            GCPClusters,
            GCPIdentity,
            GCPProjects,
        )

        return cls(GCPProjects(), GCPIdentity(), GCPClusters(), GCPBucketIam(), **kwargs)

    def _emit(self, event: MilestoneEvent) -> None:
        logger.info(f"milestone reached: {event.name}")
        if self.on_milestone is not None:
            self.on_milestone(event)

    def prepare(self, opts: Mapping[str, Any] | ClusterSpec | None) -> ClusterSpec:
        """Merges opts over the defaults and validates them. Makes no provider calls."""
        if isinstance(opts, ClusterSpec):
            opts = opts.model_dump(exclude_none=True)
        spec = load_options(opts, self.defaults)
        return with_project_id(spec, self.settings.project_prefix)

    async def create(self, opts: Mapping[str, Any] | ClusterSpec | None) -> ClusterSpec:
        settings = self.settings
        spec = self.prepare(opts)

        await ensure_project(self.projects, spec, settings.project_prefix)
        await enable_services(self.identity, spec.project_id, settings.baseline_services)
        await fix_billing(self.identity, spec, settings.billing_service)
        await enable_services(
            self.identity, spec.project_id, settings.supporting_services
        )
        spec = await create_cluster_service(
            self.identity, spec, settings.account_display_name
        )
        spec = await get_account_credentials(self.identity, spec)
        await set_roles(self.identity, spec, settings.cluster_roles)
        self._emit(PrerequisitesCreated(prerequisites=list(PREREQUISITES)))

        await grant_bucket_access(
            self.buckets, spec, settings.reader_role, settings.writer_role
        )
        self._emit(
            BucketPermissionsSet(
                read_access=list(spec.readable_buckets),
                write_access=list(spec.writable_buckets),
            )
        )

        # Translate once so the event carries exactly what was submitted
        request = get_cluster_config(spec)
        spec = await create_cluster(
            self.clusters, spec, request, settings=settings, sleep=self.sleep
        )
        self._emit(ClusterInitialized(kubernetes_cluster=request))

        await wait_for_cluster(self.clusters, spec, settings=settings, sleep=self.sleep)
        logger.info(f"cluster {spec.name} is ready in project {spec.project_id}")
        return spec
