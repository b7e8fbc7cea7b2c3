from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PolicyBinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    members: list[str] = Field(default_factory=list)


class AccessPolicy(BaseModel):
    """
    A versioned set of role bindings. The etag must be sent back untouched
    when the policy is written, so the server can reject stale writes.
    """

    model_config = ConfigDict(frozen=True)

    version: int = 1
    etag: str | bytes | None = None
    bindings: list[PolicyBinding] = Field(default_factory=list)

    def members_for(self, role: str) -> list[str]:
        for binding in self.bindings:
            if binding.role == role:
                return list(binding.members)
        return []


class ServiceAccount(BaseModel):
    email: str
    unique_id: str = ""
    display_name: str = ""


class AccountCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    key_name: str
    key_data: dict[str, Any] = Field(
        default_factory=dict, description="Decoded service account key file"
    )
