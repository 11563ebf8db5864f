"""평가 배정 레포지토리 — EvaluationAssignment 조회.

Assignment Repository — Read-only queries over evaluation_assignments and
their responses. This is the raw-response source the rating engine consumes.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, distinct, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from talent_engine.models.assignment import AssignmentStatus, EvaluationAssignment
from talent_engine.models.organization import Employee
from talent_engine.repositories.base import BaseRepository


class AssignmentRepository(BaseRepository[EvaluationAssignment]):

    def __init__(self) -> None:
        super().__init__(EvaluationAssignment)

    async def get_for_evaluatees(
        self, db: AsyncSession, cycle_id: UUID, evaluatee_ids: Sequence[UUID]
    ) -> Sequence[EvaluationAssignment]:
        """피평가자들의 모든 배정을 응답과 함께 조회 (All assignments of the evaluatees, responses eager-loaded)."""
        if not evaluatee_ids:
            return []
        query: Select = (
            select(EvaluationAssignment)
            .options(selectinload(EvaluationAssignment.responses))
            .where(
                EvaluationAssignment.cycle_id == cycle_id,
                EvaluationAssignment.evaluatee_id.in_(evaluatee_ids),
            )
            .order_by(EvaluationAssignment.created_at)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def list_evaluatee_ids(self, db: AsyncSession, cycle_id: UUID) -> list[UUID]:
        """주기의 모든 피평가자 ID — 상태 무관 (Distinct evaluatees of a cycle, any status)."""
        result = await db.execute(
            select(distinct(EvaluationAssignment.evaluatee_id))
            .where(EvaluationAssignment.cycle_id == cycle_id)
        )
        return sorted(result.scalars().all(), key=str)

    async def list_completed_evaluatees(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        department_ids: Sequence[UUID] | None = None,
    ) -> Sequence[Employee]:
        """완료된 배정이 1개 이상인 피평가자 목록 — 진행 중 주기의 실시간 모집단.

        Distinct evaluatees with at least one COMPLETED assignment in the cycle,
        optionally restricted to a department scope, ordered by name.
        """
        has_completed = (
            select(EvaluationAssignment.evaluatee_id)
            .where(
                EvaluationAssignment.cycle_id == cycle_id,
                EvaluationAssignment.status == AssignmentStatus.COMPLETED.value,
            )
        )
        query: Select = select(Employee).where(
            Employee.organization_id == organization_id,
            Employee.id.in_(has_completed),
        )
        if department_ids is not None:
            query = query.where(Employee.department_id.in_(department_ids))

        result = await db.execute(query.order_by(Employee.full_name, Employee.id))
        return result.scalars().all()


assignment_repository: AssignmentRepository = AssignmentRepository()
