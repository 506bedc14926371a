"""Shared API dependencies for authentication and the moderation service."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from safeharbor.core.security import InvalidTokenError, decode_access_token
from safeharbor.services.moderation import ModerationService, get_moderation_service

# Missing credentials are reported as 401 by get_current_subject, not 403.
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_subject(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Return the subject of the caller's bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(credentials.credentials)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


CurrentSubjectDep = Annotated[str, Depends(get_current_subject)]
ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]
