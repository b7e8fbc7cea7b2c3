import asyncio

from tenacity import AsyncRetrying, retry_if_result, stop_never, wait_exponential

from .config import DEFAULT_SETTINGS, ProvisioningSettings
from .core import FAILED_STATUSES, PENDING_STATUSES, Sleep
from .errors import OperationFailedError, ProvisioningError
from .logger import logger
from .providers.base import ClusterProvider
from .schemas.operation import Operation
from .schemas.spec import ClusterSpec


def is_pending(operation: Operation) -> bool:
    return operation.status in PENDING_STATUSES


async def wait_for_cluster(
    clusters: ClusterProvider,
    spec: ClusterSpec,
    settings: ProvisioningSettings = DEFAULT_SETTINGS,
    sleep: Sleep = asyncio.sleep,
) -> Operation:
    """
    Polls the cluster's creation operation until it leaves the pending
    states. The wait between polls starts at settings.poll_initial_wait and
    grows by settings.poll_multiplier up to settings.poll_max_wait. There is
    no attempt limit.

    Raises OperationFailedError when the operation ends aborted or carrying
    an error.
    """
    if spec.operation is None:
        raise ProvisioningError(f"no cluster operation to wait on for {spec.name}")
    pending = spec.operation

    async def poll() -> Operation:
        try:
            result = await clusters.get_operation(
                spec.project_id, pending.zone, pending.name
            )
        except Exception as e:
            msg = f"failed to check cluster operation {pending.name} with {e}"
            logger.error(msg)
            raise ProvisioningError(msg) from e
        logger.info(f"cluster status is {result.status}")
        return result

    retrying = AsyncRetrying(
        retry=retry_if_result(is_pending),
        wait=wait_exponential(
            multiplier=settings.poll_initial_wait,
            exp_base=settings.poll_multiplier,
            max=settings.poll_max_wait,
        ),
        stop=stop_never,
        sleep=sleep,
    )
    operation = await retrying(poll)

    if operation.status in FAILED_STATUSES or operation.error:
        msg = (
            f"cluster operation {operation.name} ended with status "
            f"{operation.status}: {operation.error or 'no detail'}"
        )
        logger.error(msg)
        raise OperationFailedError(msg)
    return operation
