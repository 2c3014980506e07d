import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.database import get_db
from apartment_manager.core.deps import require_manager
from apartment_manager.models.spending_config import SpendingConfig
from apartment_manager.models.user import User
from apartment_manager.schemas.spending_config import (
    SpendingConfigCreate,
    SpendingConfigResponse,
    SpendingConfigUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/spending-configs", tags=["spending-configs"])


async def _get_own_config(db: AsyncSession, config_id: uuid.UUID, user: User) -> SpendingConfig:
    result = await db.execute(
        select(SpendingConfig).where(
            SpendingConfig.id == config_id,
            SpendingConfig.created_by_user_id == user.id,
        )
    )
    config = result.scalar_one_or_none()
    if not config:
        raise HTTPException(status_code=404, detail="Spending config not found or unauthorized")
    return config


@router.get("/", response_model=list[SpendingConfigResponse])
async def list_spending_configs(
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(SpendingConfig)
        .where(SpendingConfig.created_by_user_id == user.id)
        .order_by(SpendingConfig.created_at.desc())
    )
    return result.scalars().all()


@router.post("/", response_model=SpendingConfigResponse, status_code=201)
async def create_spending_config(
    payload: SpendingConfigCreate,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    config = SpendingConfig(
        title=payload.title,
        description=payload.description,
        created_by_user_id=user.id,
    )
    db.add(config)
    await db.flush()
    await db.refresh(config)
    logger.info("Spending config %s created by %s", config.id, user.id)
    return config


@router.put("/{config_id}", response_model=SpendingConfigResponse)
async def update_spending_config(
    config_id: uuid.UUID,
    payload: SpendingConfigUpdate,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    config = await _get_own_config(db, config_id, user)
    config.title = payload.title
    config.description = payload.description
    await db.flush()
    await db.refresh(config)
    return config


@router.delete("/{config_id}", status_code=204)
async def delete_spending_config(
    config_id: uuid.UUID,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    config = await _get_own_config(db, config_id, user)
    await db.delete(config)
    logger.info("Spending config %s deleted by %s", config_id, user.id)
