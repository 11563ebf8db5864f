"""평가 주기 관련 SQLAlchemy ORM 모델 정의.

Performance cycle SQLAlchemy ORM model definitions.
A cycle freezes the competency catalog it measures (competency_snapshot)
and may override the tenant's evaluator weights for that cycle only.

Tables:
    - performance_cycles: 평가 주기 (Measurement cycles)
    - cycle_questions: 주기 설문 문항 (Survey questions mapped to competencies)
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from sqlalchemy import String, Integer, Date, DateTime, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talent_engine.database import Base, JSONVariant


class CycleStatus(str, Enum):
    """평가 주기 상태 (Cycle lifecycle status)."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    IN_REVIEW = "IN_REVIEW"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PerformanceCycle(Base):
    """평가 주기 모델.

    Performance cycle model.
    ACTIVE cycles are read live from assignments; IN_REVIEW/COMPLETED cycles
    are read from persisted performance_ratings.

    Attributes:
        id: 고유 식별자 UUID
        organization_id: 소속 조직 FK
        name: 주기 이름
        status: 상태 (DRAFT, ACTIVE, IN_REVIEW, COMPLETED, CANCELLED)
        start_date / end_date: 기간
        competency_snapshot: 생성 시점에 고정된 역량 목록 [{code, name, category}]
        evaluator_weights_override: 주기 전용 평가자 가중치 {self, manager, peer, upward}
    """

    __tablename__ = "performance_cycles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=CycleStatus.DRAFT.value)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    competency_snapshot: Mapped[list | None] = mapped_column(JSONVariant, nullable=True)
    evaluator_weights_override: Mapped[dict | None] = mapped_column(JSONVariant, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    questions = relationship("CycleQuestion", back_populates="cycle", cascade="all, delete-orphan", order_by="CycleQuestion.sort_order")


class CycleQuestion(Base):
    """주기 설문 문항 — 응답을 역량에 매핑.

    Cycle survey question. competency_code links responses to a competency
    of the cycle's snapshot; questions without one only count toward the
    overall rater-type averages.
    """

    __tablename__ = "cycle_questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cycle_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("performance_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    competency_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    cycle = relationship("PerformanceCycle", back_populates="questions")
