"""Request dependencies: the signed-in user and role gates."""
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from forge_crm.core.security import decode_token
from forge_crm.db.session import get_session
from forge_crm.models.user import ADMIN_ROLES, User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_session)],
) -> User:
    """Resolve the access token to an active User; deactivated users are rejected."""
    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise _credentials_error()
        user_id = UUID(payload.get("sub") or "")
    except (JWTError, ValueError):
        raise _credentials_error()

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise _credentials_error()
    return user


def require_role(*roles: str):
    """Dependency factory: 403 unless the signed-in user holds one of *roles*."""
    async def check(user=Depends(get_current_user)):
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role}' is not permitted for this action.",
            )
        return user
    return check


# User management and alert settings are admin-only.
require_admin = require_role(*ADMIN_ROLES)
