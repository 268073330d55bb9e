"""
authcore.auth.policy

Role-based authorization policies.

Responsibilities:
- Name the policies downstream services gate on (`AdminOnly`, `UserOrAdmin`, ...).
- Decide, purely from a role set, whether a policy is satisfied.

Role names are case-sensitive. Unknown policies deny.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from authcore.observability.logging import get_logger

log = get_logger(__name__)

ROLE_USER = "User"
ROLE_ADMIN = "Admin"

ADMIN_ONLY = "AdminOnly"
USER_OR_ADMIN = "UserOrAdmin"

# policy name -> roles, any one of which satisfies it
DEFAULT_POLICIES: Mapping[str, frozenset[str]] = {
    ADMIN_ONLY: frozenset({ROLE_ADMIN}),
    USER_OR_ADMIN: frozenset({ROLE_USER, ROLE_ADMIN}),
}


class AuthorizationEvaluator:
    def __init__(self, policies: Mapping[str, Iterable[str]] | None = None) -> None:
        source = DEFAULT_POLICIES if policies is None else policies
        self._policies = {name: frozenset(roles) for name, roles in source.items()}

    @property
    def policy_names(self) -> frozenset[str]:
        return frozenset(self._policies)

    def permits(self, roles: Iterable[str], policy: str) -> bool:
        allowed = self._policies.get(policy)
        if allowed is None:
            log.warning("authz_unknown_policy", policy=policy)
            return False
        return not allowed.isdisjoint(roles)


# --- Module Notes -----------------------------------------------------------
# Evaluation is deterministic and side-effect free apart from the unknown-policy log line.
