"""Shared FastAPI dependencies."""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.exceptions import CredentialsException, PermissionDenied
from app.core.security import decode_token
from app.database import get_db

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> dict:
    """Validate the externally issued bearer token and require the admin role."""
    if credentials is None:
        raise CredentialsException()

    payload = decode_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise CredentialsException()

    if payload.get("role") != settings.ADMIN_ROLE:
        raise PermissionDenied("Admin access required")

    return payload


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentAdmin = Annotated[dict, Depends(get_current_admin)]
