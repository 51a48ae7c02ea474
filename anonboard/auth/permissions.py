"""Role-based access control (RBAC) logic.

Role hierarchy: administrator > moderator > member
"""

from __future__ import annotations

from fastapi import HTTPException, status

from anonboard.auth.models import Account, Role


def has_permission(account: Account, required_role: Role) -> bool:
    """Check if an account's role meets or exceeds the required role level."""
    role = account.role if isinstance(account.role, Role) else Role(account.role)
    return role.level >= required_role.level


def require_role(account: Account, role: Role) -> None:
    """Validate that an account has at least the given role.

    Raises ``HTTPException(403)`` if it does not.

    Usage in a router::

        @router.get("/admin/flagged")
        async def flagged(account: Account = Depends(get_current_account)):
            require_role(account, Role.moderator)
            ...
    """
    if not has_permission(account, role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires role '{role.value}' or higher",
        )
