from collections.abc import Sequence

from ..errors import ProvisioningError
from ..logger import logger
from ..providers.base import IdentityProvider
from ..schemas.iam import AccessPolicy
from ..schemas.spec import ClusterSpec


async def create_cluster_service(
    identity: IdentityProvider, spec: ClusterSpec, display_name: str
) -> ClusterSpec:
    """
    Creates the cluster's service account. When the platform hands back a
    canonical email, the returned spec carries it as service_account.
    """
    logger.info(f"creating service account for project {spec.project_id}")
    try:
        account = await identity.create_service_account(
            spec.project_id, spec.service_account, display_name
        )
    except Exception as e:
        msg = f"failed to create cluster service {spec.service_account} with {e}"
        logger.error(msg)
        raise ProvisioningError(msg) from e

    if account.email:
        return spec.model_copy(update={"service_account": account.email})
    return spec


async def get_account_credentials(
    identity: IdentityProvider, spec: ClusterSpec
) -> ClusterSpec:
    logger.info(f"acquiring service account credentials for project {spec.project_id}")
    try:
        credentials = await identity.create_credentials(
            spec.project_id, spec.service_account
        )
    except Exception as e:
        msg = f"failed to get account credentials for {spec.service_account} with {e}"
        logger.error(msg)
        raise ProvisioningError(msg) from e

    return spec.model_copy(update={"credentials": credentials})


async def set_roles(
    identity: IdentityProvider, spec: ClusterSpec, roles: Sequence[str]
) -> AccessPolicy:
    logger.info(f"setting service account roles {spec.project_id}")
    try:
        return await identity.assign_roles(
            spec.project_id, "serviceAccount", spec.service_account, list(roles)
        )
    except Exception as e:
        msg = (
            f"failed to assign roles to cluster service {spec.service_account} "
            f"with {e}"
        )
        logger.error(msg)
        raise ProvisioningError(msg) from e
