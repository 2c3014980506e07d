import uuid
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.database import get_db
from apartment_manager.core.security import ACCESS, decode_token, token_subject
from apartment_manager.models.property import Property, property_managers, property_tenants
from apartment_manager.models.user import User, UserRole
from apartment_manager.services.errors import Unauthorized


def _token_from_request(request: Request) -> str | None:
    # httpOnly cookie first (browser), then Authorization header (scripts / tests)
    token = request.cookies.get("access_token")
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    payload = decode_token(token, ACCESS)
    user_id = token_subject(payload) if payload else None
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory: the current user must hold one of `roles`."""
    allowed = {r.value for r in roles}

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check


require_manager = require_roles(UserRole.property_manager)
require_tenant = require_roles(UserRole.tenant)


# ─── Property scoping ─────────────────────────────────────────────────────────

async def managed_property_ids(db: AsyncSession, user: User) -> list[uuid.UUID]:
    result = await db.execute(
        select(property_managers.c.property_id).where(property_managers.c.user_id == user.id)
    )
    return list(result.scalars().all())


async def tenant_property_ids(db: AsyncSession, user: User) -> list[uuid.UUID]:
    result = await db.execute(
        select(property_tenants.c.property_id).where(property_tenants.c.user_id == user.id)
    )
    return list(result.scalars().all())


async def load_managed_property(
    property_id: uuid.UUID,
    user: User,
    db: AsyncSession,
) -> Property:
    """The property if `user` manages it; a generic 403 otherwise (existence is not revealed)."""
    result = await db.execute(
        select(Property)
        .join(property_managers, property_managers.c.property_id == Property.id)
        .where(Property.id == property_id, property_managers.c.user_id == user.id)
    )
    prop = result.scalar_one_or_none()
    if not prop:
        raise Unauthorized()
    return prop


async def get_managed_property(
    property_id: uuid.UUID,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
) -> Property:
    return await load_managed_property(property_id, user, db)
