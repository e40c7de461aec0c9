"""
Authentication and Authorization Module

Resolves the caller identity attached to every request. Tokens are issued
elsewhere; this module only validates bearer JWTs and maps their claims to an
``Actor`` carrying the caller's id and role.

Roles:
- super_admin: platform operators who approve, reject and remove admins
- admin: an applicant / institution administrator acting on their own account
- system: scheduled jobs and other internal callers (never issued to users)

SECURITY NOTE:
- Development mode test tokens are ONLY accepted when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production to disable them
"""

import enum
import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mosque_directory.core.config import settings
from mosque_directory.core.security import decode_token

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


class ActorRole(str, enum.Enum):
    """Role of the caller performing an operation."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """
    The caller identity attached to an operation.

    Attributes:
        id: Caller's unique identifier. For applicants this is their AdminAccount id.
        role: Caller's role
        name: Display name recorded in audit entries
        email: Caller's email address (optional)
    """

    id: UUID
    role: ActorRole
    name: str | None = None
    email: str = ""

    @property
    def is_super_admin(self) -> bool:
        return self.role == ActorRole.SUPER_ADMIN

    def __str__(self) -> str:
        return f"Actor(id={self.id}, role={self.role.value})"


SYSTEM_ACTOR = Actor(
    id=UUID("00000000-0000-0000-0000-000000000000"),
    role=ActorRole.SYSTEM,
    name="System",
)


def _is_dev_mode_safe() -> bool:
    """
    Check if development test tokens may be accepted.

    Both the loaded settings and the raw PYTHON_ENV variable must agree that
    this is a development environment.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_SUPER_ADMIN = Actor(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    role=ActorRole.SUPER_ADMIN,
    name="Development Super Admin",
    email="superadmin@mosque-directory.dev",
)


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> Actor:
    """
    Validate a JWT token and build the caller identity from its claims.

    Raises:
        HTTPException 401: If the token is invalid, expired or carries bad claims
    """
    if _DEVELOPMENT_MODE and token in ("dev-token", "test-token"):
        logger.debug("Development mode: Using test token")
        return _DEV_SUPER_ADMIN

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    token_type = payload.get("type", "access")
    if token_type != "access":
        logger.warning(f"Invalid token type: {token_type}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        role = ActorRole(payload.get("role", ""))
        if role == ActorRole.SYSTEM:
            raise ValueError("The system role cannot be presented by a caller")

        return Actor(
            id=UUID(user_id_str),
            role=role,
            name=payload.get("name"),
            email=payload.get("email", ""),
        )
    except ValueError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """FastAPI dependency returning the authenticated caller."""
    return await _validate_jwt_token(credentials.credentials)


async def get_current_super_admin(
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    """
    FastAPI dependency requiring the super_admin role.

    Raises:
        HTTPException 403: If the caller is not a super admin
    """
    if actor.role != ActorRole.SUPER_ADMIN:
        logger.warning(
            f"Access denied: caller {actor.id} has role '{actor.role.value}', "
            "but 'super_admin' is required"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "SUPER_ADMIN_ACCESS_REQUIRED",
                "message": "Super admin access is required for this endpoint.",
            },
        )

    logger.debug(f"Authenticated super admin: {actor.id}")
    return actor


async def get_current_applicant(
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    """
    FastAPI dependency requiring an applicant (admin role) token.

    The token subject is the caller's AdminAccount id.

    Raises:
        HTTPException 403: If the caller is not an applicant
    """
    if actor.role != ActorRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "APPLICANT_ACCESS_REQUIRED",
                "message": "This endpoint is only available to admin account holders.",
            },
        )
    return actor


__all__ = [
    "Actor",
    "ActorRole",
    "SYSTEM_ACTOR",
    "get_current_actor",
    "get_current_super_admin",
    "get_current_applicant",
]
