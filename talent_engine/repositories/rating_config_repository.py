"""등급 설정 레포지토리 — PerformanceRatingConfig 조회.

Rating Config Repository — One configuration row per organization.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.rating import PerformanceRatingConfig
from talent_engine.repositories.base import BaseRepository


class RatingConfigRepository(BaseRepository[PerformanceRatingConfig]):

    def __init__(self) -> None:
        super().__init__(PerformanceRatingConfig)

    async def get_by_org(
        self, db: AsyncSession, organization_id: UUID
    ) -> PerformanceRatingConfig | None:
        result = await db.execute(
            select(PerformanceRatingConfig).where(PerformanceRatingConfig.organization_id == organization_id)
        )
        return result.scalar_one_or_none()


rating_config_repository: RatingConfigRepository = RatingConfigRepository()
