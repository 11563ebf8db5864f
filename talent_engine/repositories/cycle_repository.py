"""평가 주기 레포지토리 — PerformanceCycle / CycleQuestion 조회.

Cycle Repository — Queries for performance_cycles and cycle_questions tables.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.cycle import CycleQuestion, PerformanceCycle
from talent_engine.repositories.base import BaseRepository


class CycleRepository(BaseRepository[PerformanceCycle]):

    def __init__(self) -> None:
        super().__init__(PerformanceCycle)

    async def get_question_competency_map(
        self, db: AsyncSession, cycle_id: UUID
    ) -> dict[UUID, str]:
        """문항 ID → 역량 코드 매핑 (Question id to competency code, mapped questions only)."""
        result = await db.execute(
            select(CycleQuestion.id, CycleQuestion.competency_code).where(
                CycleQuestion.cycle_id == cycle_id,
                CycleQuestion.competency_code.is_not(None),
            )
        )
        return {question_id: code for question_id, code in result.all()}


cycle_repository: CycleRepository = CycleRepository()
