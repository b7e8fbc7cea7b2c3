import asyncio
from collections.abc import Sequence

from ..errors import ProvisioningError
from ..logger import logger
from ..policy import grant_all, service_account_member
from ..providers.base import BucketIamProvider
from ..schemas.iam import AccessPolicy
from ..schemas.spec import ClusterSpec


async def get_bucket_access(buckets: BucketIamProvider, bucket: str) -> AccessPolicy:
    logger.debug(f"getting bucket access for {bucket}")
    try:
        return await buckets.get_policy(bucket)
    except Exception as e:
        msg = f"failed to get roles for {bucket} with {e}"
        logger.error(msg)
        raise ProvisioningError(msg) from e


async def set_bucket_access(
    buckets: BucketIamProvider,
    bucket: str,
    policy: AccessPolicy,
    account: str,
    roles: Sequence[str],
) -> AccessPolicy:
    logger.debug(f"setting bucket access for {bucket}")
    merged = grant_all(policy, service_account_member(account), roles)
    try:
        return await buckets.set_policy(bucket, merged)
    except Exception as e:
        msg = f"failed to grant {account} to {', '.join(roles)} with {e}"
        logger.error(msg)
        raise ProvisioningError(msg) from e


async def grant_one(
    buckets: BucketIamProvider, bucket: str, account: str, roles: Sequence[str]
) -> AccessPolicy:
    """Read-modify-write of a single bucket's policy."""
    policy = await get_bucket_access(buckets, bucket)
    return await set_bucket_access(buckets, bucket, policy, account, roles)


def roles_by_bucket(
    spec: ClusterSpec, reader_role: str, writer_role: str
) -> dict[str, list[str]]:
    """Bucket name -> roles to grant, in first-seen bucket order."""
    wanted: dict[str, list[str]] = {}
    for bucket in spec.readable_buckets:
        wanted.setdefault(bucket, []).append(reader_role)
    for bucket in spec.writable_buckets:
        wanted.setdefault(bucket, []).append(writer_role)
    return wanted


async def grant_bucket_access(
    buckets: BucketIamProvider,
    spec: ClusterSpec,
    reader_role: str,
    writer_role: str,
) -> list[AccessPolicy]:
    """
    Grants the service account reader_role on every readable bucket and
    writer_role on every writable bucket, one policy write per bucket.

    Distinct buckets are granted concurrently. The first failure cancels
    the grants still in flight and is raised.
    """
    logger.info(f"granting bucket access for project {spec.project_id}")
    tasks = [
        asyncio.create_task(
            grant_one(buckets, bucket, spec.service_account, roles)
        )
        for bucket, roles in roles_by_bucket(spec, reader_role, writer_role).items()
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
