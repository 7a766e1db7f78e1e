# deps.py
# Request dependencies: the database session, the caller's session token
# (bearer header or cookie) and the admin gate used by every admin router.

import logging
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import auth_utils
import crud
from config import settings
from database import SessionLocal
from models import TokenBlacklist, User

log = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

NOT_AUTHENTICATED = "Could not validate credentials"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session

SessionDep = Annotated[AsyncSession, Depends(get_db)]


async def is_token_blacklisted(token: str, db: AsyncSession) -> bool:
    """True once the token has been presented to /auth/logout."""
    result = await db.execute(select(TokenBlacklist.id).where(TokenBlacklist.token == token).limit(1))
    return result.first() is not None


def is_admin(user: User) -> bool:
    return bool(user.is_admin) or user.email == settings.ADMIN_EMAIL


async def user_for_token(db: AsyncSession, token: Optional[str]) -> Optional[User]:
    """
    Resolve a session token to its user.

    Returns None for a missing, expired, logged-out or document-scoped token,
    and for a subject that no longer exists.
    """
    if not token:
        log.warning("Authentication failed: no token")
        return None

    email = auth_utils.decode_access_token(token)
    if email is None:
        log.warning("Authentication failed: invalid or expired token")
        return None

    if await is_token_blacklisted(token, db):
        log.warning("Authentication failed: token was logged out")
        return None

    user = await crud.get_user_by_email(db, email=email)
    if user is None:
        log.warning(f"Authentication failed: no user {email}")
    return user


async def get_current_user(
    db: SessionDep,
    cookie_token: Annotated[Optional[str], Cookie(alias="access_token")] = None,
    bearer_token: Annotated[Optional[str], Depends(oauth2_scheme)] = None,
) -> User:
    # the console sends a bearer header; browsers only carry the cookie
    user = await user_for_token(db, bearer_token or cookie_token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

CurrentUserDep = Annotated[User, Depends(get_current_user)]


async def get_current_admin_user(current_user: CurrentUserDep) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    if not is_admin(current_user):
        log.warning(f"Admin access refused for {current_user.email}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not an admin user")
    return current_user

CurrentAdminUserDep = Annotated[User, Depends(get_current_admin_user)]
