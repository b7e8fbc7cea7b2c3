import asyncio
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from ..config import DEFAULT_SETTINGS, ProvisioningSettings
from ..core import Sleep
from ..errors import ProvisioningError
from ..logger import logger
from ..providers.base import ClusterProvider
from ..schemas.spec import ClusterSpec
from ..translate import get_cluster_config


def _log_race(retry_state: RetryCallState) -> None:
    seconds = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        "failed to provision cluster due to race conditions in Google API "
        f"initialization. Trying again in {seconds:g} seconds ..."
    )


async def create_cluster(
    clusters: ClusterProvider,
    spec: ClusterSpec,
    request: dict[str, Any] | None = None,
    settings: ProvisioningSettings = DEFAULT_SETTINGS,
    sleep: Sleep = asyncio.sleep,
) -> ClusterSpec:
    """
    Submits the cluster creation request and returns spec with the pending
    operation attached.

    A freshly created project can reject cluster creation until its APIs
    settle; those rejections are retried after a fixed pause, up to
    settings.race_max_attempts submissions in total.
    """
    logger.info(f"creating Kubernetes cluster for project {spec.project_id}")
    if request is None:
        request = get_cluster_config(spec)

    def is_race(e: BaseException) -> bool:
        return settings.race_marker in str(e)

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_race),
        wait=wait_fixed(settings.race_retry_seconds),
        stop=stop_after_attempt(settings.race_max_attempts),
        sleep=sleep,
        before_sleep=_log_race,
        reraise=True,
    )
    try:
        operation = await retrying(clusters.create_cluster, request)
    except Exception as e:
        msg = f"failed to instantiate cluster with {e}"
        logger.error(msg)
        raise ProvisioningError(msg) from e

    return spec.model_copy(update={"operation": operation})
