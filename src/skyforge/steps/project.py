from ..errors import ProvisioningError
from ..logger import logger
from ..providers.base import ProjectProvider
from ..schemas.operation import ProjectRef
from ..schemas.spec import ClusterSpec


def project_name(spec: ClusterSpec, prefix: str) -> str:
    return f"{prefix}{spec.name}"


def with_project_id(spec: ClusterSpec, prefix: str) -> ClusterSpec:
    """Defaults project_id to the prefixed cluster name."""
    if spec.project_id:
        return spec
    return spec.model_copy(update={"project_id": project_name(spec, prefix)})


async def find_project(projects: ProjectProvider, project_id: str) -> ProjectRef | None:
    try:
        existing = await projects.list_projects()
    except Exception as e:
        # Not fatal: creation will report the real problem if there is one
        logger.error(
            f"failed to get a project list to check for project {project_id} "
            f"existence with {e}"
        )
        return None

    for project in existing:
        if project.id == project_id:
            return project
    return None


async def ensure_project(
    projects: ProjectProvider, spec: ClusterSpec, prefix: str
) -> ProjectRef:
    """
    Returns the project spec.project_id names, creating it under the
    organization when it does not exist yet.
    """
    name = project_name(spec, prefix)
    project_id = spec.project_id or name
    logger.info(f"creating project {name}")

    project = await find_project(projects, project_id)
    if project:
        logger.info(f"project {project_id} already exists, skipping creation step")
        return project

    try:
        project, completion = await projects.create_project(
            project_id, name, spec.organization_id
        )
        await completion.wait()
    except Exception as e:
        msg = (
            f"failed to create project {spec.name} for organization "
            f"{spec.organization_id} with {e}"
        )
        logger.error(msg)
        raise ProvisioningError(msg) from e

    return project
