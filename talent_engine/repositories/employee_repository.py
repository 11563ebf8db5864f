"""직원 레포지토리 — Employee 조회.

Employee Repository — Queries for the employees table.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.organization import Employee
from talent_engine.repositories.base import BaseRepository


class EmployeeRepository(BaseRepository[Employee]):

    def __init__(self) -> None:
        super().__init__(Employee)

    async def get_many(
        self, db: AsyncSession, employee_ids: Sequence[UUID]
    ) -> dict[UUID, Employee]:
        if not employee_ids:
            return {}
        result = await db.execute(select(Employee).where(Employee.id.in_(employee_ids)))
        return {employee.id: employee for employee in result.scalars().all()}


employee_repository: EmployeeRepository = EmployeeRepository()
