from collections.abc import Sequence

from ..errors import ProvisioningError
from ..logger import logger
from ..providers.base import IdentityProvider
from ..schemas.spec import ClusterSpec


async def enable_services(
    identity: IdentityProvider, project_id: str, services: Sequence[str]
) -> list[str]:
    """
    Enables services one at a time, in the order given. Some APIs refuse to
    enable until the ones before them are active.
    """
    logger.info(f"enabling services {', '.join(services)} for project {project_id}")
    enabled = []
    for service in services:
        try:
            await identity.enable_service(project_id, service)
        except Exception as e:
            msg = f"failed to enable service {service} for project {project_id} with {e}"
            logger.error(msg)
            raise ProvisioningError(msg) from e
        enabled.append(service)
    return enabled


async def fix_billing(
    identity: IdentityProvider, spec: ClusterSpec, billing_service: str
) -> None:
    logger.info(f"associating billing account with project {spec.project_id}")
    try:
        await identity.enable_service(spec.project_id, billing_service)
        await identity.assign_billing(spec.project_id, spec.billing_account)
    except Exception as e:
        # Users know the run by its service account, so that is what gets reported
        msg = (
            f"failed to associate billing with account {spec.service_account} "
            f"with {e}"
        )
        logger.error(msg)
        raise ProvisioningError(msg) from e
