"""테스트 인프라 — 임시 DB, 세션, httpx 클라이언트 및 데이터 생성 헬퍼.

Test infrastructure — Temporary database, session, httpx client fixtures and
seed helpers. TEST_DATABASE_URL selects the database; by default every test
gets a throwaway SQLite file (aiosqlite) so per-evaluatee bulk sessions see
committed data.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from talent_engine.database import Base, get_db, get_session_factory
from talent_engine.main import app
from talent_engine.models import *  # noqa: F401,F403 — register all models with metadata
from talent_engine.models.assignment import AssignmentStatus, EvaluationAssignment, EvaluationResponse, RaterType
from talent_engine.models.cycle import CycleQuestion, CycleStatus, PerformanceCycle
from talent_engine.models.organization import Employee, Organization
from talent_engine.utils.jwt import create_access_token

COMPETENCIES: list[dict[str, str]] = [
    {"code": "COMM", "name": "Communication", "category": "core"},
    {"code": "EXEC", "name": "Execution", "category": "core"},
]


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 테스트마다 스키마를 새로 생성합니다."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    eng = create_async_engine(url, echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — DB 세션과 세션 팩토리를 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 헬퍼: 테스트용 데이터 생성 (모두 커밋하여 다른 세션에서도 보이도록)
# ---------------------------------------------------------------------------
async def create_employee(
    db: AsyncSession,
    org: Organization,
    full_name: str,
    department_id: uuid.UUID | None = None,
    position: str = "Engineer",
) -> Employee:
    employee = Employee(organization_id=org.id, full_name=full_name, position=position, department_id=department_id)
    db.add(employee)
    await db.commit()
    return employee


async def create_cycle(
    db: AsyncSession,
    org: Organization,
    status: CycleStatus = CycleStatus.IN_REVIEW,
    weights_override: dict | None = None,
) -> PerformanceCycle:
    """평가 주기와 역량별 문항 2개를 생성합니다."""
    cycle = PerformanceCycle(
        organization_id=org.id,
        name="2026 H1",
        status=status.value,
        competency_snapshot=COMPETENCIES,
        evaluator_weights_override=weights_override,
    )
    db.add(cycle)
    await db.flush()
    for index, competency in enumerate(COMPETENCIES):
        db.add(CycleQuestion(
            cycle_id=cycle.id, text=f"{competency['name']}?", competency_code=competency["code"], sort_order=index
        ))
    await db.commit()
    return cycle


async def add_assignment(
    db: AsyncSession,
    cycle: PerformanceCycle,
    evaluator: Employee,
    evaluatee: Employee,
    rater_type: RaterType,
    ratings: list[int],
    status: AssignmentStatus = AssignmentStatus.COMPLETED,
    comment: str | None = None,
) -> EvaluationAssignment:
    """배정과 문항 순서대로의 응답을 생성합니다 (One response per cycle question, in order)."""
    questions = (
        await db.execute(select(CycleQuestion).where(CycleQuestion.cycle_id == cycle.id).order_by(CycleQuestion.sort_order))
    ).scalars().all()
    assignment = EvaluationAssignment(
        organization_id=cycle.organization_id,
        cycle_id=cycle.id,
        evaluator_id=evaluator.id,
        evaluatee_id=evaluatee.id,
        evaluation_type=rater_type.value,
        status=status.value,
        completed_at=datetime.now(timezone.utc) if status == AssignmentStatus.COMPLETED else None,
    )
    db.add(assignment)
    await db.flush()
    for question, rating in zip(questions, ratings):
        db.add(EvaluationResponse(
            assignment_id=assignment.id, question_id=question.id, rating=rating, text_response=comment
        ))
    await db.commit()
    return assignment


@pytest_asyncio.fixture
async def org(db: AsyncSession) -> Organization:
    """테스트 조직을 생성합니다."""
    o = Organization(name="Test Corp")
    db.add(o)
    await db.commit()
    return o


@pytest_asyncio.fixture
async def manager(db: AsyncSession, org) -> Employee:
    return await create_employee(db, org, "Morgan Manager", position="Team Lead")


@pytest_asyncio.fixture
async def employee(db: AsyncSession, org) -> Employee:
    return await create_employee(db, org, "Alex Kim")


@pytest_asyncio.fixture
async def scored_cycle(db: AsyncSession, org, manager, employee) -> PerformanceCycle:
    """자기평가 평균 4.0, 상사평가 평균 3.0인 피평가자 1명 (Self avg 4.0, manager avg 3.0)."""
    cycle = await create_cycle(db, org)
    await add_assignment(db, cycle, employee, employee, RaterType.SELF, [4, 4])
    await add_assignment(db, cycle, manager, employee, RaterType.MANAGER_TO_EMPLOYEE, [3, 3])
    return cycle


def make_token(org: Organization, actor: str = "hr@test.com", departments: list | None = None) -> str:
    """테스트용 JWT 액세스 토큰을 생성합니다."""
    payload: dict = {"sub": actor, "org": str(org.id)}
    if departments is not None:
        payload["depts"] = [str(d) for d in departments]
    return create_access_token(payload)


@pytest.fixture
def admin_token(org) -> str:
    return make_token(org)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
