"""
Maps a validated ClusterSpec onto google.cloud.container_v1 request shapes.

The returned dicts use container_v1 field names and can be passed straight to
ClusterManagerClient.create_cluster(request=...).
"""

import math
import uuid
from typing import Any

from .schemas.spec import SIZE_REGEX, ClusterSpec, WorkerPoolSpec

NODE_POOL_NAME = "default-pool"
IMAGE_TYPE = "COS_CONTAINERD"
NODE_OAUTH_SCOPES = [
    "https://www.googleapis.com/auth/compute",
    "https://www.googleapis.com/auth/devstorage.read_only",
]

# n1 predefined core counts and memory per core (GB) for each family
PREDEFINED_CORES = [1, 2, 4, 8, 16, 32, 64, 96]
HIGHCPU_GB_PER_CORE = 0.9
STANDARD_GB_PER_CORE = 3.75


def size_in_gb(value: str | None) -> float:
    """Parses '512MB' / '16GB' into gigabytes. MB values are divided by 1024."""
    if not value:
        return 0
    match = SIZE_REGEX.match(value)
    if not match:
        raise ValueError(f"invalid size {value!r}")
    size, units = int(match.group(1)), match.group(2)
    if units.upper() != "GB":
        return size / 1024
    return size


def get_machine_type(worker: WorkerPoolSpec) -> str:
    cores = next((c for c in PREDEFINED_CORES if c >= worker.cores), PREDEFINED_CORES[-1])
    per_core = size_in_gb(worker.memory) / worker.cores

    if per_core <= HIGHCPU_GB_PER_CORE and cores > 1:
        family = "highcpu"
    elif per_core <= STANDARD_GB_PER_CORE or cores == 1:
        family = "standard"
    else:
        family = "highmem"
    return f"n1-{family}-{cores}"


def get_node_config(spec: ClusterSpec) -> dict[str, Any]:
    worker = spec.worker
    config: dict[str, Any] = {
        "name": NODE_POOL_NAME,
        "initial_node_count": worker.count,
        "config": {
            "machine_type": get_machine_type(worker),
            "service_account": spec.service_account,
            "disk_size_gb": math.ceil(size_in_gb(worker.storage.persistent)),
            "image_type": IMAGE_TYPE,
            "local_ssd_count": 0,
            "preemptible": worker.reserved is not True,
            "oauth_scopes": list(NODE_OAUTH_SCOPES),
        },
        "management": {
            "auto_repair": spec.flags.auto_repair,
            "auto_upgrade": spec.flags.auto_upgrade,
        },
    }
    if spec.flags.auto_scale and worker.min and worker.max:
        config["autoscaling"] = {
            "enabled": True,
            "min_node_count": worker.min,
            "max_node_count": worker.max,
        }
    return config


def get_cluster_config(spec: ClusterSpec) -> dict[str, Any]:
    flags = spec.flags
    worker = spec.worker
    authorized = spec.manager.network.authorized_cidr

    cluster: dict[str, Any] = {
        "name": spec.name,
        "description": spec.description,
        "node_pools": [get_node_config(spec)],
        "initial_cluster_version": spec.version,
        "locations": list(spec.zones),
        "addons_config": {
            "http_load_balancing": {"disabled": flags.load_balanced_http is not True},
            "horizontal_pod_autoscaling": {"disabled": flags.auto_scale is not True},
            "kubernetes_dashboard": {"disabled": flags.include_dashboard is not True},
            "network_policy_config": {"disabled": flags.network_policy is not True},
        },
        "legacy_abac": {"enabled": flags.legacy_authorization is True},
        "network_policy": {"enabled": flags.network_policy, "provider": "CALICO"},
        "master_authorized_networks_config": {
            "enabled": bool(authorized),
            "cidr_blocks": [
                {"display_name": entry.name, "cidr_block": entry.block}
                for entry in authorized
            ],
        },
        "master_auth": {
            "client_certificate_config": {
                "issue_client_certificate": flags.client_cert,
            },
        },
    }

    if worker.network:
        if worker.network.vpc:
            cluster["network"] = worker.network.vpc
        if worker.network.range:
            cluster["cluster_ipv4_cidr"] = worker.network.range

    if worker.maintenance_window:
        cluster["maintenance_policy"] = {
            "window": {
                "daily_maintenance_window": {"start_time": worker.maintenance_window}
            }
        }

    if flags.basic_auth:
        cluster["master_auth"]["username"] = spec.user
        cluster["master_auth"]["password"] = spec.password or str(uuid.uuid4())

    if flags.service_monitoring is False:
        cluster["monitoring_service"] = "none"
    if flags.service_logging is False:
        cluster["logging_service"] = "none"

    return {
        "parent": f"projects/{spec.project_id}/locations/{spec.zones[0]}",
        "cluster": cluster,
    }
