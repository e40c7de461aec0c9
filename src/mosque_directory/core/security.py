"""
Security Utilities

JWT encoding and decoding for caller identity tokens.
Token issuance (login) belongs to the identity provider; ``create_access_token``
exists for tooling and tests that need a signed token.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from mosque_directory.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(
    subject: str,
    role: str,
    email: str = "",
    name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token carrying the caller's identity claims."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode: dict[str, Any] = {
        "sub": subject,
        "role": role,
        "email": email,
        "type": "access",
        "exp": expire,
    }
    if name:
        to_encode["name"] = name
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Returns:
        The token payload, or None if the signature, algorithm or expiry is invalid.
    """
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.debug(f"Token decode failed: {e}")
        return None
