"""관리자 평가 주기 라우터 — 등급 생성, 하이브리드 목록, 9-box, 분포, 결과 API.

Admin Cycle Router — Rating generation (single and bulk), the hybrid rating
listing, nine-box grid, level distribution, 360° results and the cycle's
evaluator weight override.
"""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talent_engine.api.deps import TenantContext, get_tenant_context, scoped_departments
from talent_engine.database import get_db, get_session_factory
from talent_engine.schemas.rating import BulkGenerateResponse, RatingListParams, RatingListResponse, RatingResponse
from talent_engine.schemas.rating_config import CycleWeightsUpdate
from talent_engine.services.rating_config_service import rating_config_service
from talent_engine.services.rating_listing_service import rating_listing_service
from talent_engine.services.rating_service import rating_service
from talent_engine.services.results_service import results_service

router: APIRouter = APIRouter()


# === 등급 생성 ===

@router.post("/{cycle_id}/ratings/generate", response_model=BulkGenerateResponse)
async def generate_ratings_for_cycle(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """주기의 모든 피평가자 등급을 생성합니다. 인원별로 커밋되며 실패는 목록으로 반환됩니다."""
    return await rating_service.generate_ratings_for_cycle(
        db,
        cycle_id=cycle_id,
        organization_id=tenant.organization_id,
        session_factory=session_factory,
        actor=tenant.actor,
    )


@router.post("/{cycle_id}/ratings/{employee_id}/generate", response_model=RatingResponse)
async def generate_rating(
    cycle_id: UUID,
    employee_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """한 피평가자의 등급을 생성 또는 갱신합니다."""
    result = await rating_service.generate_rating(
        db, cycle_id, employee_id, tenant.organization_id, actor=tenant.actor
    )
    await db.commit()
    return await rating_service.get_rating(db, result["rating"].id, tenant.organization_id)


# === 조회 ===

@router.get("/{cycle_id}/ratings", response_model=RatingListResponse)
async def list_ratings(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=200)] = 20,
    sort_by: Annotated[Literal["name", "score", "level"], Query()] = "name",
    sort_order: Annotated[Literal["asc", "desc"], Query()] = "asc",
    evaluation_status: Annotated[Literal["all", "evaluated", "not_evaluated"], Query()] = "all",
    potential_status: Annotated[Literal["all", "assigned", "pending"], Query()] = "all",
    search: Annotated[str | None, Query()] = None,
    department_ids: Annotated[list[UUID] | None, Query()] = None,
    filter_level: Annotated[str | None, Query()] = None,
    filter_nine_box: Annotated[str | None, Query()] = None,
    filter_calibrated: Annotated[bool | None, Query()] = None,
) -> dict:
    """주기 등급 목록 — 진행 중이면 실시간, 그 외에는 저장된 등급."""
    params = RatingListParams(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        evaluation_status=evaluation_status,
        potential_status=potential_status,
        search=search,
        department_ids=scoped_departments(tenant, department_ids),
        filter_level=filter_level,
        filter_nine_box=filter_nine_box,
        filter_calibrated=filter_calibrated,
    )
    return await rating_listing_service.list_ratings_for_cycle(db, cycle_id, tenant.organization_id, params)


@router.get("/{cycle_id}/nine-box")
async def get_nine_box(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    department_ids: Annotated[list[UUID] | None, Query()] = None,
) -> dict:
    """9-box 그리드 데이터를 조회합니다."""
    return await rating_service.get_nine_box_data(
        db, cycle_id, tenant.organization_id, scoped_departments(tenant, department_ids)
    )


@router.get("/{cycle_id}/distribution")
async def get_distribution(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    department_ids: Annotated[list[UUID] | None, Query()] = None,
) -> dict:
    """산출/최종 등급 분포를 조회합니다."""
    return await rating_service.get_rating_distribution(
        db, cycle_id, tenant.organization_id, scoped_departments(tenant, department_ids)
    )


@router.get("/{cycle_id}/evaluatees")
async def list_evaluatees(
    cycle_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> list[dict]:
    """주기의 피평가자 목록과 기본 통계를 조회합니다."""
    return await results_service.list_evaluatees_in_cycle(db, cycle_id, tenant.organization_id)


@router.get("/{cycle_id}/results/{employee_id}")
async def get_evaluatee_results(
    cycle_id: UUID,
    employee_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """피평가자의 360° 결과를 조회합니다."""
    return await results_service.get_evaluatee_results(db, cycle_id, employee_id, tenant.organization_id)


# === 가중치 재정의 ===

@router.put("/{cycle_id}/weights")
async def set_cycle_weights(
    cycle_id: UUID,
    data: CycleWeightsUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """주기 평가자 가중치 재정의를 설정합니다. null이면 해제합니다."""
    result = await rating_config_service.set_cycle_weights(db, cycle_id, tenant.organization_id, data)
    await db.commit()
    return result
