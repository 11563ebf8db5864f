"""기본 레포지토리 — 모든 레포지토리의 부모 클래스.

Base repository shared by the rating engine's repositories: tenant-scoped
lookup by id, optional row lock, create and in-place update.

Usage:
    class CycleRepository(BaseRepository[PerformanceCycle]):
        def __init__(self) -> None:
            super().__init__(PerformanceCycle)
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """제네릭 레포지토리 (Generic repository over one SQLAlchemy model).

    Models carrying an ``organization_id`` column are filtered by tenant
    whenever the caller passes one.
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model: type[ModelType] = model

    def _scoped(self, query: Select, organization_id: UUID | None) -> Select:
        if organization_id is not None and hasattr(self.model, "organization_id"):
            query = query.where(self.model.organization_id == organization_id)
        return query

    async def get_by_id(
        self,
        db: AsyncSession,
        record_id: UUID,
        organization_id: UUID | None = None,
        for_update: bool = False,
    ) -> ModelType | None:
        """ID로 단일 레코드 조회.

        Args:
            organization_id: 테넌트 범위, None이면 범위 미적용 (Tenant scope; None skips it)
            for_update: SELECT ... FOR UPDATE 로 행 잠금 (Lock the row until commit;
                        cached copies in the session are overwritten)

        Returns:
            ModelType | None: 레코드 또는 None (다른 테넌트 소유 포함)
        """
        query: Select = self._scoped(select(self.model).where(self.model.id == record_id), organization_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, db: AsyncSession, obj_data: dict[str, Any]) -> ModelType:
        """레코드 생성 후 flush (Insert and flush; server defaults are refreshed)."""
        db_obj: ModelType = self.model(**obj_data)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(self, db: AsyncSession, db_obj: ModelType, update_data: dict[str, Any]) -> ModelType:
        """조회된 레코드에 값 적용 (Apply values to a loaded record).

        None is written as-is so callers can clear columns such as a cycle's
        weight override or a rating's potential.
        """
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj
