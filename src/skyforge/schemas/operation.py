from pydantic import BaseModel, ConfigDict


class Operation(BaseModel):
    """Handle to an asynchronous GKE operation."""

    model_config = ConfigDict(frozen=True)

    name: str
    zone: str
    status: str | None = None
    error: str | None = None


class ProjectRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    state: str = ""
