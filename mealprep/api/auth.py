# api/auth.py
# Identity for the API. Sessions and accounts live in an external auth
# service; this module only verifies its bearer tokens. The token's `sub`
# claim is the user's UUID.

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from mealprep.core.config import settings

bearer_scheme = HTTPBearer(auto_error=False)

# Get a logger instance
logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    """
    Creates a new JWT access token. Used by issuers and tests; the API itself
    never hands out tokens.
    """
    to_encode = data.copy()
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UUID:
    """
    Decodes the bearer token and returns the caller's user id.
    The id is also stored on request.state for the structured request log.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        logger.debug("Request without bearer token")
        raise credentials_exception
    try:
        payload = jwt.decode(
            credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        subject = payload.get("sub")
        if subject is None:
            logger.error("Token has no subject")
            raise credentials_exception
        user_id = UUID(str(subject))
    except (JWTError, ValueError):
        logger.error("Invalid Auth Token")
        raise credentials_exception

    request.state.user_id = user_id
    return user_id
