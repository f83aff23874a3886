"""
Verification of identity tokens.

Tokens are issued by the external identity service and signed with the
shared secret. We only decode and validate them here.
"""

import logging
from typing import Any

from jose import JWTError, jwt

from opsportal.config import settings
from opsportal.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise


def get_identity_subject(token: str) -> str:
    """
    Return the profile id carried by an access token.

    Raises:
        AuthenticationError: If the token is invalid, expired, not an
            access token, or has no subject.
    """
    try:
        payload = decode_token(token)
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e

    if payload.get("type", "access") != "access":
        raise AuthenticationError("Invalid token type. Use access token.")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token payload")

    return str(subject)
