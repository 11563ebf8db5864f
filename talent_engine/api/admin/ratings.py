"""관리자 성과 등급 라우터 — 등급 조회, 캘리브레이션, 잠재력 API.

Admin Rating Router — Rating detail, calibration, potential rating and the
audit trail of one rating. Every mutation commits once per request.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.api.deps import TenantContext, get_tenant_context
from talent_engine.database import get_db
from talent_engine.schemas.rating import AuditLogResponse, CalibrateRequest, PotentialRequest, RatingResponse
from talent_engine.services.calibration_service import calibration_service
from talent_engine.services.rating_service import rating_service

router: APIRouter = APIRouter()


@router.get("/{rating_id}", response_model=RatingResponse)
async def get_rating(
    rating_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """등급 상세를 조회합니다."""
    return await rating_service.get_rating(db, rating_id, tenant.organization_id)


@router.post("/{rating_id}/calibrate", response_model=RatingResponse)
async def calibrate_rating(
    rating_id: UUID,
    data: CalibrateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """최종 점수를 조정합니다. 산출 점수는 변경되지 않습니다."""
    rating = await calibration_service.calibrate_rating(
        db,
        rating_id=rating_id,
        organization_id=tenant.organization_id,
        final_score=data.final_score,
        reason=data.reason,
        actor=tenant.actor,
        session_id=data.session_id,
    )
    await db.commit()
    return await rating_service.get_rating(db, rating.id, tenant.organization_id)


@router.post("/{rating_id}/revert", response_model=RatingResponse)
async def revert_calibration(
    rating_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """캘리브레이션을 되돌립니다."""
    rating = await calibration_service.revert_calibration(
        db, rating_id=rating_id, organization_id=tenant.organization_id, actor=tenant.actor
    )
    await db.commit()
    return await rating_service.get_rating(db, rating.id, tenant.organization_id)


@router.post("/{rating_id}/potential", response_model=RatingResponse)
async def rate_potential(
    rating_id: UUID,
    data: PotentialRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """잠재력을 평가하고 9-box 위치를 갱신합니다."""
    rating = await calibration_service.rate_potential(
        db, rating_id=rating_id, organization_id=tenant.organization_id, data=data, actor=tenant.actor
    )
    await db.commit()
    return await rating_service.get_rating(db, rating.id, tenant.organization_id)


@router.delete("/{rating_id}/potential", response_model=RatingResponse)
async def clear_potential(
    rating_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """잠재력 평가를 삭제합니다."""
    rating = await calibration_service.clear_potential(
        db, rating_id=rating_id, organization_id=tenant.organization_id, actor=tenant.actor
    )
    await db.commit()
    return await rating_service.get_rating(db, rating.id, tenant.organization_id)


@router.post("/{rating_id}/nine-box/recalculate", response_model=RatingResponse)
async def recalculate_nine_box(
    rating_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """9-box 위치를 다시 계산합니다. 잠재력이 없으면 위치는 비어 있습니다."""
    await rating_service.recalculate_nine_box(db, rating_id, tenant.organization_id)
    await db.commit()
    return await rating_service.get_rating(db, rating_id, tenant.organization_id)


@router.get("/{rating_id}/history", response_model=list[AuditLogResponse])
async def get_rating_history(
    rating_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> list[dict]:
    """등급 변경 이력을 조회합니다."""
    logs = await calibration_service.get_rating_history(db, rating_id, tenant.organization_id)
    return [calibration_service.build_audit_response(log) for log in logs]
