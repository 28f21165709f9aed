"""FastAPI dependencies for authentication and directory configuration."""

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.errors import NotFoundError
from app.core.security import decode_jwt
from app.models.directory_settings import DirectorySettingsRead
from app.models.user import STAFF_ROLES, User, UserRole
from app.services.allow_lists import load_directory_settings

bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)


class AuthContext:
    """Resolved identity carried through a request."""

    __slots__ = ("user_id", "user_role")

    def __init__(self, user_id: uuid.UUID, user_role: str) -> None:
        self.user_id = user_id
        self.user_role = user_role

    @property
    def is_staff(self) -> bool:
        return self.user_role in STAFF_ROLES


async def _resolve_jwt(token: str, session: AsyncSession) -> AuthContext:
    """Decode a JWT and load the user it names."""
    try:
        payload = decode_jwt(token)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired JWT",
        ) from exc

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed JWT payload",
        ) from exc

    # Role comes from the database so demotions take effect immediately
    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
        )
    return AuthContext(user_id=user.id, user_role=user.role)


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AuthContext:
    """Resolve a bearer JWT to an AuthContext."""
    return await _resolve_jwt(credentials.credentials, session)


async def get_optional_auth_context(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AuthContext | None:
    """Anonymous visitors get None; a bad token is still rejected."""
    if credentials is None:
        return None
    return await _resolve_jwt(credentials.credentials, session)


async def require_staff(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    if not auth.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff can manage the directory",
        )
    return auth


async def require_admin(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    if auth.user_role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can manage users",
        )
    return auth


async def get_directory_config(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DirectorySettingsRead:
    return await load_directory_settings(session)


async def require_directory_enabled(
    config: Annotated[DirectorySettingsRead, Depends(get_directory_config)],
) -> DirectorySettingsRead:
    """Disabled directory pages are indistinguishable from unrouted paths."""
    if not config.enabled:
        raise NotFoundError()
    return config


# Typed shorthand for use in route signatures
Auth = Annotated[AuthContext, Depends(get_auth_context)]
OptionalAuth = Annotated[AuthContext | None, Depends(get_optional_auth_context)]
Staff = Annotated[AuthContext, Depends(require_staff)]
Admin = Annotated[AuthContext, Depends(require_admin)]
Session = Annotated[AsyncSession, Depends(get_session)]
DirectoryConfig = Annotated[DirectorySettingsRead, Depends(get_directory_config)]
EnabledDirectory = Annotated[DirectorySettingsRead, Depends(require_directory_enabled)]
