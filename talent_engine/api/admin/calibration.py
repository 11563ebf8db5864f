"""관리자 캘리브레이션 세션 라우터.

Admin Calibration Session Router — Open and close calibration sessions and
list the adjustments recorded under a session.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.api.deps import TenantContext, get_tenant_context
from talent_engine.database import get_db
from talent_engine.schemas.rating import AuditLogResponse, CalibrationSessionCreate, CalibrationSessionResponse
from talent_engine.services.calibration_service import calibration_service

router: APIRouter = APIRouter()


@router.post("/sessions", response_model=CalibrationSessionResponse, status_code=201)
async def create_session(
    data: CalibrationSessionCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """캘리브레이션 세션을 생성합니다."""
    session = await calibration_service.create_session(db, tenant.organization_id, data, tenant.actor)
    await db.commit()
    return calibration_service.build_session_response(session)


@router.post("/sessions/{session_id}/close", response_model=CalibrationSessionResponse)
async def close_session(
    session_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> dict:
    """캘리브레이션 세션을 종료합니다. 종료 후에는 세션으로 조정할 수 없습니다."""
    session = await calibration_service.close_session(db, session_id, tenant.organization_id)
    await db.commit()
    return calibration_service.build_session_response(session)


@router.get("/sessions/{session_id}/adjustments", response_model=list[AuditLogResponse])
async def list_session_adjustments(
    session_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
) -> list[dict]:
    """세션에서 이루어진 조정 기록을 조회합니다."""
    logs = await calibration_service.list_session_adjustments(db, session_id, tenant.organization_id)
    return [calibration_service.build_audit_response(log) for log in logs]
