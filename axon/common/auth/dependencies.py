"""
Authentication dependencies for the Axon API.

The session provider hands the client a bearer token; this boundary
implementation treats the token itself as the user id.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from axon.common.logger import app_logger

logger = app_logger.getChild("auth")

SIGN_IN_REQUIRED = "Unauthorized - Please sign in to continue"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Resolve the signed-in user from ``Authorization: Bearer <user id>``; 401 otherwise."""
    if not authorization:
        raise _unauthorized(SIGN_IN_REQUIRED)

    parts = authorization.split()
    if len(parts) != 2:
        logger.debug("Rejected malformed authorization header")
        raise _unauthorized("Invalid authorization header format")

    scheme, user_id = parts
    if scheme.lower() != "bearer":
        raise _unauthorized("Invalid authentication scheme")

    return user_id
