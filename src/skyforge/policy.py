from collections.abc import Iterable

from .schemas.iam import AccessPolicy, PolicyBinding


def service_account_member(account: str) -> str:
    return f"serviceAccount:{account}"


def grant(policy: AccessPolicy, member: str, role: str) -> AccessPolicy:
    """
    Returns a copy of policy in which member holds role.

    An existing binding for role gains member if it is missing; otherwise a
    new binding is appended. Other bindings are passed through untouched and
    version/etag are kept so the write can be checked for concurrent edits.
    """
    bindings: list[PolicyBinding] = []
    added = False
    for binding in policy.bindings:
        if binding.role == role:
            added = True
            if member not in binding.members:
                binding = binding.model_copy(
                    update={"members": [*binding.members, member]}
                )
        bindings.append(binding)

    if not added:
        bindings.append(PolicyBinding(role=role, members=[member]))

    return policy.model_copy(update={"bindings": bindings})


def grant_all(policy: AccessPolicy, member: str, roles: Iterable[str]) -> AccessPolicy:
    for role in roles:
        policy = grant(policy, member, role)
    return policy
