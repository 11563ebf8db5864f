"""캘리브레이션 레포지토리 — 세션 및 감사 로그.

Calibration Repository — Queries for calibration_sessions and rating_audit_logs.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.rating import CalibrationSession, RatingAuditLog
from talent_engine.repositories.base import BaseRepository


class CalibrationSessionRepository(BaseRepository[CalibrationSession]):

    def __init__(self) -> None:
        super().__init__(CalibrationSession)


class RatingAuditLogRepository(BaseRepository[RatingAuditLog]):

    def __init__(self) -> None:
        super().__init__(RatingAuditLog)

    async def list_by_session(
        self, db: AsyncSession, session_id: UUID, organization_id: UUID
    ) -> Sequence[RatingAuditLog]:
        query: Select = (
            select(RatingAuditLog)
            .where(
                RatingAuditLog.session_id == session_id,
                RatingAuditLog.organization_id == organization_id,
            )
            .order_by(RatingAuditLog.created_at)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def list_by_rating(
        self, db: AsyncSession, rating_id: UUID
    ) -> Sequence[RatingAuditLog]:
        query: Select = (
            select(RatingAuditLog)
            .where(RatingAuditLog.rating_id == rating_id)
            .order_by(RatingAuditLog.created_at)
        )
        result = await db.execute(query)
        return result.scalars().all()


calibration_session_repository: CalibrationSessionRepository = CalibrationSessionRepository()
rating_audit_log_repository: RatingAuditLogRepository = RatingAuditLogRepository()
