"""
Tubely Authentication Module

Bearer-token identity gate for the upload endpoints. Tokens are HS256 JWTs
signed with the shared ``jwt_secret``; the ``sub`` claim is the caller's user
id. Key features:

- FastAPI ``HTTPBearer`` scheme for extracting the credential
- Local HS256 JWT issuing (tests, development token script)
- ``get_current_user_id`` dependency yielding the caller identity
- ``ensure_owner`` authorization check against a video record

Usage:
    ```python
    from fastapi import Depends
    from tubely.core.auth import get_current_user_id

    @router.post("/videos/{video_id}/upload")
    async def upload(video_id: str, user_id: str = Depends(get_current_user_id)):
        ...
    ```
"""

import logging

from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tubely.config import Settings, get_settings
from tubely.core.errors import ForbiddenError, UnauthorizedError
from tubely.models.video import Video


# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Security Scheme
# =============================================================================

# auto_error=False so that a missing header is answered with 401, not 403
security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token signed with the shared secret.",
    auto_error=False,
)

JWT_ALGORITHM = "HS256"


# =============================================================================
# Token Functions
# =============================================================================


def create_access_token(
    user_id: str,
    settings: Settings | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """
    Create an HS256 access token for the given user.

    Token claims:
    - sub: User ID (subject)
    - iat: Issued at timestamp
    - exp: Expiration timestamp (``jwt_expiration_hours`` unless overridden)
    - type: "access"

    Args:
        user_id: The user's unique identifier.
        settings: Optional Settings instance. If not provided, uses get_settings().
        expires_in: Optional lifetime override; negative values produce an
            already-expired token.

    Returns:
        str: The encoded JWT token string.
    """
    if settings is None:
        settings = get_settings()

    now = datetime.now(UTC)
    expire = now + (expires_in or timedelta(hours=settings.jwt_expiration_hours))

    payload = {
        "sub": user_id,
        "iat": now,
        "exp": expire,
        "type": "access",
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)
    logger.debug("Issued access token for user: %s (expires: %s)", user_id, expire.isoformat())
    return token


def validate_jwt(token: str, secret: str) -> str:
    """
    Validate a bearer token and return the caller's user id.

    Args:
        token: The raw JWT string.
        secret: Shared HS256 secret.

    Returns:
        str: The ``sub`` claim of the token.

    Raises:
        UnauthorizedError: If the token is malformed, expired, wrongly signed
            or carries no subject.
    """
    if not token:
        raise UnauthorizedError("Missing bearer token")

    try:
        payload: dict[str, Any] = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        logger.warning("Bearer token has expired")
        raise UnauthorizedError("Token has expired") from e
    except JWTError as e:
        logger.warning("Bearer token validation failed: %s", str(e))
        raise UnauthorizedError("Invalid token") from e

    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        logger.warning("Token missing 'sub' claim")
        raise UnauthorizedError("Invalid token: missing user identifier")

    return user_id


# =============================================================================
# Authentication Dependencies
# =============================================================================


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Resolve the authenticated caller from the Authorization header.

    Args:
        credentials: Bearer credentials extracted by HTTPBearer (None if absent).
        settings: Application settings (injected via FastAPI dependency).

    Returns:
        str: The caller's user id.

    Raises:
        HTTPException: With 401 status if the credential is missing or invalid.
    """
    try:
        if credentials is None:
            raise UnauthorizedError("Not authenticated")
        return validate_jwt(credentials.credentials, settings.jwt_secret)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.to_detail(),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def ensure_owner(video: Video, user_id: str) -> None:
    """
    Require that ``user_id`` owns ``video``.

    Raises:
        ForbiddenError: If the caller is not the record owner.
    """
    if video.user_id != user_id:
        logger.warning(
            "User %s attempted to modify video %s owned by %s", user_id, video.id, video.user_id
        )
        raise ForbiddenError("User is not authorized to modify this video")
