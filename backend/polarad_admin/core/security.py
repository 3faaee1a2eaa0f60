from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from polarad_admin.core.config import settings

ADMIN_ROLES = ("SUPER", "MANAGER", "OPERATOR")


@dataclass(frozen=True)
class AdminSession:
    """Admin identity carried in the signed auth cookie."""

    admin_id: int
    role: str
    name: str
    email: str

    @property
    def label(self) -> str:
        """Name recorded as ``changed_by`` in status logs."""
        return self.name or f"admin#{self.admin_id}"


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Decode and validate a JWT access token."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from exc


def create_admin_token(admin_id: int, role: str, name: str, email: str) -> str:
    return create_access_token(
        {"sub": str(admin_id), "type": "admin", "role": role, "name": name, "email": email}
    )


async def get_current_admin(request: Request) -> AdminSession:
    """FastAPI dependency: return the admin session from the auth cookie.

    Only tokens with ``type == "admin"`` are accepted; customer tokens signed
    with the same secret are rejected.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    payload = decode_access_token(token)
    if payload.get("type") != "admin":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin session required",
        )

    try:
        admin_id = int(payload.get("sub"))
    except (ValueError, TypeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
        ) from exc

    role = payload.get("role")
    if role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin role",
        )

    request.state.admin_id = admin_id
    return AdminSession(
        admin_id=admin_id,
        role=role,
        name=payload.get("name") or "",
        email=payload.get("email") or "",
    )
