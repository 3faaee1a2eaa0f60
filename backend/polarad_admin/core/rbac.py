"""Role-based access control: a fixed role → dashboard-section allowlist."""

from fastapi import Depends, HTTPException, status

from polarad_admin.core.security import AdminSession, get_current_admin

ADMIN_PERMISSIONS: dict[str, list[str]] = {
    "SUPER": ["*"],
    "MANAGER": ["/", "/users", "/workflows", "/notifications", "/contracts"],
    "OPERATOR": ["/", "/workflows", "/notifications"],
}


def has_admin_permission(role: str, path: str) -> bool:
    """Return True if ``role`` may access the dashboard section ``path``."""
    permissions = ADMIN_PERMISSIONS.get(role)
    if not permissions:
        return False
    if "*" in permissions:
        return True
    return any(path == p or path.startswith(p + "/") for p in permissions)


def require_section(section: str):
    """Return a FastAPI dependency that enforces access to a dashboard section."""

    async def _check(admin: AdminSession = Depends(get_current_admin)) -> AdminSession:
        if not has_admin_permission(admin.role, section):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {admin.role} cannot access {section}",
            )
        return admin

    return _check
