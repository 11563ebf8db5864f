"""성과 등급 레포지토리 — PerformanceRating CRUD 및 집계.

Rating Repository — Upsert, filtered listing and COUNT queries for the
performance_ratings table.
"""

from datetime import datetime, timezone
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.organization import Employee
from talent_engine.models.rating import PerformanceRating
from talent_engine.repositories.base import BaseRepository

# 생성 시 덮어쓰는 기계 산출 컬럼 — 캘리브레이션/잠재력 컬럼은 제외
# Machine-derived columns overwritten on generation; calibration and potential columns excluded
MACHINE_FIELDS: tuple[str, ...] = (
    "calculated_score",
    "calculated_level",
    "self_score",
    "manager_score",
    "peer_avg_score",
    "upward_avg_score",
    "evaluation_completeness",
    "total_evaluations",
    "completed_evaluations",
)

# 방언별 INSERT ... ON CONFLICT 구성자 (Dialect-specific upsert constructs)
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class RatingRepository(BaseRepository[PerformanceRating]):

    def __init__(self) -> None:
        super().__init__(PerformanceRating)

    async def upsert_calculated(
        self, db: AsyncSession, values: dict[str, Any]
    ) -> PerformanceRating:
        """(cycle_id, employee_id) 기준 원자적 upsert.

        Atomic INSERT ... ON CONFLICT DO UPDATE keyed by (cycle_id, employee_id).
        On conflict only MACHINE_FIELDS and updated_at are overwritten.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            values: organization_id, cycle_id, employee_id 및 MACHINE_FIELDS 값

        Returns:
            PerformanceRating: upsert 후 최신 상태의 행 (Row as stored after the upsert)
        """
        dialect: str = db.get_bind().dialect.name
        insert_fn = _UPSERT_INSERTS.get(dialect)
        if insert_fn is None:
            raise NotImplementedError(f"Upsert is not supported for dialect '{dialect}'")

        stmt = insert_fn(PerformanceRating).values(**values)
        update_set: dict[str, Any] = {field: stmt.excluded[field] for field in MACHINE_FIELDS}
        # onupdate는 ON CONFLICT 경로에 적용되지 않으므로 직접 지정 (onupdate does not fire on the conflict path)
        update_set["updated_at"] = datetime.now(timezone.utc)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PerformanceRating.cycle_id, PerformanceRating.employee_id],
            set_=update_set,
        )
        await db.execute(stmt)

        result = await db.execute(
            select(PerformanceRating)
            .where(
                PerformanceRating.cycle_id == values["cycle_id"],
                PerformanceRating.employee_id == values["employee_id"],
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_by_cycle_and_employees(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        employee_ids: Sequence[UUID],
    ) -> dict[UUID, PerformanceRating]:
        """직원 ID → 저장된 등급 매핑 (Persisted ratings keyed by employee id)."""
        if not employee_ids:
            return {}
        result = await db.execute(
            select(PerformanceRating).where(
                PerformanceRating.cycle_id == cycle_id,
                PerformanceRating.organization_id == organization_id,
                PerformanceRating.employee_id.in_(employee_ids),
            )
        )
        return {rating.employee_id: rating for rating in result.scalars().all()}

    def _scope_query(
        self,
        query: Select,
        cycle_id: UUID,
        organization_id: UUID,
        department_ids: Sequence[UUID] | None,
    ) -> Select:
        query = query.where(
            PerformanceRating.cycle_id == cycle_id,
            PerformanceRating.organization_id == organization_id,
        )
        if department_ids is not None:
            query = query.where(Employee.department_id.in_(department_ids))
        return query

    async def list_with_employees(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        department_ids: Sequence[UUID] | None = None,
        only_positioned: bool = False,
    ) -> list[tuple[PerformanceRating, Employee]]:
        """주기의 모든 등급과 직원 (All ratings of a cycle joined to their employee)."""
        query: Select = select(PerformanceRating, Employee).join(
            Employee, Employee.id == PerformanceRating.employee_id
        )
        query = self._scope_query(query, cycle_id, organization_id, department_ids)
        if only_positioned:
            query = query.where(PerformanceRating.nine_box_position.is_not(None))

        result = await db.execute(query.order_by(Employee.full_name, Employee.id))
        return [(rating, employee) for rating, employee in result.all()]

    async def count_stats(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        department_ids: Sequence[UUID] | None = None,
    ) -> tuple[int, int, int]:
        """대시보드 카운터 — 페이지/상태 필터와 무관.

        Dashboard counters via separate COUNT queries, scoped by cycle, tenant
        and department only.

        Returns:
            tuple[int, int, int]: (전체, 평가 완료, 잠재력 지정) (total, evaluated, potential_assigned)
        """
        base: Select = select(func.count(PerformanceRating.id)).join(
            Employee, Employee.id == PerformanceRating.employee_id
        )
        base = self._scope_query(base, cycle_id, organization_id, department_ids)

        total: int = (await db.execute(base)).scalar() or 0
        evaluated: int = (
            await db.execute(base.where(PerformanceRating.calculated_score > 0))
        ).scalar() or 0
        potential_assigned: int = (
            await db.execute(
                base.where(
                    PerformanceRating.potential_score.is_not(None),
                    PerformanceRating.calculated_score > 0,
                )
            )
        ).scalar() or 0
        return total, evaluated, potential_assigned

    async def list_filtered(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        *,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "name",
        sort_order: str = "asc",
        department_ids: Sequence[UUID] | None = None,
        evaluation_status: str = "all",
        potential_status: str = "all",
        search: str | None = None,
        filter_level: str | None = None,
        filter_nine_box: str | None = None,
        filter_calibrated: bool | None = None,
    ) -> tuple[list[tuple[PerformanceRating, Employee]], int]:
        """저장된 등급의 필터/정렬/페이지네이션 (Closed-cycle listing over persisted rows).

        Returns:
            tuple[list[tuple[PerformanceRating, Employee]], int]: (페이지 행, 필터 적용 전체 개수)
        """
        query: Select = select(PerformanceRating, Employee).join(
            Employee, Employee.id == PerformanceRating.employee_id
        )
        query = self._scope_query(query, cycle_id, organization_id, department_ids)

        if evaluation_status == "evaluated":
            query = query.where(PerformanceRating.calculated_score > 0)
        elif evaluation_status == "not_evaluated":
            query = query.where(PerformanceRating.calculated_score <= 0)

        # 잠재력 필터는 평가 완료자만 대상 (Potential filters only consider evaluated people)
        if potential_status == "assigned":
            query = query.where(
                PerformanceRating.potential_score.is_not(None),
                PerformanceRating.calculated_score > 0,
            )
        elif potential_status == "pending":
            query = query.where(
                PerformanceRating.potential_score.is_(None),
                PerformanceRating.calculated_score > 0,
            )

        if search and search.strip():
            query = query.where(Employee.full_name.ilike(f"%{search.strip()}%"))

        if filter_level:
            query = query.where(
                or_(
                    PerformanceRating.final_level == filter_level,
                    and_(
                        PerformanceRating.final_level.is_(None),
                        PerformanceRating.calculated_level == filter_level,
                    ),
                )
            )
        if filter_nine_box:
            query = query.where(PerformanceRating.nine_box_position == filter_nine_box)
        if filter_calibrated is not None:
            query = query.where(PerformanceRating.calibrated == filter_calibrated)

        count_query: Select = select(func.count()).select_from(query.subquery())
        total: int = (await db.execute(count_query)).scalar() or 0

        if sort_by == "score":
            sort_column = func.coalesce(PerformanceRating.final_score, PerformanceRating.calculated_score)
        elif sort_by == "level":
            sort_column = func.coalesce(PerformanceRating.final_level, PerformanceRating.calculated_level)
        else:
            sort_column = Employee.full_name
        primary = sort_column.desc() if sort_order == "desc" else sort_column.asc()

        query = (
            query.order_by(primary, Employee.full_name, PerformanceRating.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await db.execute(query)
        return [(rating, employee) for rating, employee in result.all()], total


rating_repository: RatingRepository = RatingRepository()
