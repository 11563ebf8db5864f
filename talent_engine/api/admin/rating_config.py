"""관리자 등급 설정 라우터 — 조직 척도 및 평가자 가중치.

Admin Rating Config Router — Tenant level scale and evaluator weights.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.api.deps import TenantContext, get_tenant_context
from talent_engine.database import get_db
from talent_engine.schemas.rating_config import RatingConfigResponse, RatingConfigUpdate
from talent_engine.services.rating_config_service import rating_config_service

router: APIRouter = APIRouter()


@router.get("", response_model=RatingConfigResponse)
async def get_rating_config(
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """유효 등급 설정을 조회합니다. 저장된 설정이 없으면 기본값을 반환합니다."""
    return await rating_config_service.get_config(db, tenant.organization_id)


@router.put("", response_model=RatingConfigResponse)
async def update_rating_config(
    data: RatingConfigUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """등급 척도와 평가자 가중치를 저장합니다."""
    config = await rating_config_service.save_config(db, tenant.organization_id, data)
    await db.commit()
    return config
