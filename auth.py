from datetime import datetime, timedelta, timezone
from typing import Annotated
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

import auth_utils
import crud
from config import settings
from deps import SessionDep, CurrentUserDep, oauth2_scheme
from models import TokenBlacklist

auth_router = APIRouter(tags=["auth"])
log = logging.getLogger(__name__)


@auth_router.post("/token")
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db_session: SessionDep
):
    user = await crud.get_user_by_email(db_session, email=form_data.username.strip().lower())

    if not user or not auth_utils.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Ensure the configured admin email ALWAYS has admin rights upon login.
    if user.email == settings.ADMIN_EMAIL and not user.is_admin:
        user.is_admin = True
        await db_session.commit()
        await db_session.refresh(user)

    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = auth_utils.create_access_token(
        data={"sub": user.email}, expires_delta=access_token_expires
    )

    is_admin = user.email == settings.ADMIN_EMAIL or user.is_admin
    log.info(f"Issued access token for {user.email} (admin={is_admin})")

    # The console keeps the bearer token; browsers get the cookie as well.
    response = JSONResponse(content={
        "access_token": access_token,
        "token_type": "bearer",
        "is_admin": is_admin,
        "email": user.email,
    })
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="Lax",
        path="/",
    )
    return response


@auth_router.post("/logout")
async def logout(request: Request, current_user: CurrentUserDep, db_session: SessionDep):
    """
    Logs out the user by adding the presented JWT to the TokenBlacklist table
    so it can no longer be replayed, and deleting the access_token cookie.
    """
    token = await oauth2_scheme(request) or request.cookies.get("access_token")

    payload = auth_utils.decode_access_token_full(token) if token else None
    if payload and payload.get("exp"):
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        db_session.add(TokenBlacklist(token=token, user_id=current_user.id, expires_at=expires_at))
        await db_session.commit()
        log.info(f"Token blacklisted for user {current_user.email}")

    response = JSONResponse(content={"success": True, "message": "Logged out"})
    response.delete_cookie(key="access_token", path="/")
    return response
