import math

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.config import settings
from apartment_manager.core.database import get_db
from apartment_manager.core.deps import get_current_user
from apartment_manager.core.redis import (
    clear_login_failures,
    is_revoked,
    lockout_remaining,
    record_login_failure,
    revoke_token,
)
from apartment_manager.core.security import (
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    seconds_until_expiry,
    token_subject,
    verify_password,
)
from apartment_manager.models.user import User
from apartment_manager.schemas.user import UserLogin, UserResponse

limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/auth", tags=["auth"])

# httpOnly cookies: strict+secure outside development, lax for cross-port localhost
_SECURE = settings.environment != "development"
_SAMESITE = "strict" if settings.environment != "development" else "lax"


def _set_auth_cookies(response: Response, user: User) -> None:
    response.set_cookie(
        key="access_token",
        value=create_access_token(user.id, user.role),
        httponly=True,
        secure=_SECURE,
        samesite=_SAMESITE,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )
    response.set_cookie(
        key="refresh_token",
        value=create_refresh_token(user.id),
        httponly=True,
        secure=_SECURE,
        samesite=_SAMESITE,
        max_age=settings.refresh_token_expire_days * 86400,
        path="/",
    )


async def _revoke(token_data: dict) -> None:
    jti = token_data.get("jti")
    if jti:
        await revoke_token(jti, seconds_until_expiry(token_data))


@router.post("/login", response_model=UserResponse)
@limiter.limit("10/minute;30/hour")
async def login(
    request: Request,
    payload: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    # Lockout check before hitting the DB
    locked_for = await lockout_remaining(payload.email)
    if locked_for:
        minutes = math.ceil(locked_for / 60)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Account temporarily locked due to too many failed attempts. Try again in {minutes} minutes.",
        )

    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(payload.password, user.hashed_password):
        # Unknown emails count too, so lockout can't be used to probe accounts
        await record_login_failure(payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    await clear_login_failures(payload.email)
    _set_auth_cookies(response, user)
    return user


@router.post("/refresh")
async def refresh_token(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    refresh = request.cookies.get("refresh_token")
    if not refresh:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No refresh token",
        )

    token_data = decode_token(refresh, REFRESH)
    user_id = token_subject(token_data) if token_data else None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    jti = token_data.get("jti")
    if jti and await is_revoked(jti):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    # Rotation: the old refresh token is revoked before new cookies go out
    await _revoke(token_data)
    _set_auth_cookies(response, user)
    return {"ok": True}


@router.post("/logout", status_code=204)
async def logout(request: Request, response: Response):
    refresh = request.cookies.get("refresh_token")
    if refresh:
        token_data = decode_token(refresh, REFRESH)
        if token_data:
            await _revoke(token_data)

    response.delete_cookie(key="access_token", path="/")
    response.delete_cookie(key="refresh_token", path="/")


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user
