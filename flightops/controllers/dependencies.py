"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from flightops.database import get_session
from flightops.utils import AuthenticationError, decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)
SessionDep = Annotated[AsyncSession, Depends(get_session)]


@dataclass(frozen=True)
class AuthContext:
    """Identity asserted by the bearer token; never re-validated here."""

    pilot_id: int
    is_admin: bool = False


async def get_current_pilot(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> AuthContext:
    """Resolve the pilot referenced by the bearer token."""

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_access_token(token)
        pilot_id = int(payload.sub)
    except (AuthenticationError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return AuthContext(pilot_id=pilot_id, is_admin=payload.admin)


CurrentPilotDep = Annotated[AuthContext, Depends(get_current_pilot)]


async def require_admin(auth: CurrentPilotDep) -> AuthContext:
    if not auth.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required",
        )
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


__all__ = [
    "AuthContext",
    "get_current_pilot",
    "require_admin",
    "oauth2_scheme",
    "SessionDep",
    "CurrentPilotDep",
    "AdminDep",
]
