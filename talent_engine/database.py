"""데이터베이스 엔진 및 세션 설정 모듈.

Database engine and session configuration module.
Sets up the async SQLAlchemy engine, session factory, and ORM base class.
PostgreSQL (asyncpg) is the production target; any async SQLAlchemy URL works
so the engine can also run against SQLite (aiosqlite) in tests.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from talent_engine.config import settings

# JSON 컬럼 타입 — PostgreSQL에서는 JSONB, 그 외 방언은 일반 JSON
# JSON column type: JSONB on PostgreSQL, plain JSON elsewhere
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """주어진 URL로 비동기 엔진을 생성합니다.

    Create an async engine for the given URL.
    asyncpg-specific pool options are applied only to PostgreSQL URLs.

    Args:
        url: SQLAlchemy 비동기 연결 문자열 (Async connection URL)
        echo: SQL 로그 출력 여부 (Whether to echo SQL)

    Returns:
        AsyncEngine: 비동기 엔진 (Async engine)
    """
    if url.startswith("postgresql+asyncpg"):
        # pool_pre_ping=True: 커넥션 풀에서 꺼낸 연결의 유효성을 사전 확인 (Validates connections before use)
        # Supavisor(트랜잭션 모드 풀러)에서 prepared statement 비활성화
        # Disable prepared statement caches for transaction-mode pooling
        return create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            connect_args={"statement_cache_size": 0},
        )
    return create_async_engine(url, echo=echo)


# 비동기 데이터베이스 엔진 — Async database engine
engine: AsyncEngine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# 비동기 세션 팩토리 — Async session factory
# expire_on_commit=False: 커밋 후에도 객체 속성 접근 가능 (Allows attribute access after commit without refresh)
# 일괄 생성은 이 팩토리로 인원별 세션을 따로 엽니다 (Bulk generation opens one session per evaluatee)
async_session: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """SQLAlchemy 선언적 베이스 클래스.

    Declarative base class for all ORM models.
    All models inherit from this class to register with the metadata.
    """

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """비동기 데이터베이스 세션을 생성하고 요청 종료 시 닫습니다.

    FastAPI dependency that yields an async database session.
    The session is automatically closed after the request completes,
    ensuring no connection leaks.

    Yields:
        AsyncSession: SQLAlchemy 비동기 세션 인스턴스 (Async session instance)
    """
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """세션 팩토리 의존성 — 일괄 처리용 (Session factory dependency for bulk jobs)."""
    return async_session
