"""평가 배정 및 응답 SQLAlchemy ORM 모델 정의.

Evaluation assignment and response SQLAlchemy ORM model definitions.
An assignment is one directed rating relationship (evaluator → evaluatee)
under a rater type; responses are its submitted answers.

Tables:
    - evaluation_assignments: 평가 배정 (Directed rating relationships)
    - evaluation_responses: 평가 응답 (Per-question answers)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Integer, Float, DateTime, Text, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talent_engine.database import Base


class RaterType(str, Enum):
    """평가자 유형 (Relationship between evaluator and evaluatee)."""

    SELF = "SELF"
    MANAGER_TO_EMPLOYEE = "MANAGER_TO_EMPLOYEE"
    PEER = "PEER"
    EMPLOYEE_TO_MANAGER = "EMPLOYEE_TO_MANAGER"


class AssignmentStatus(str, Enum):
    """배정 상태 (Assignment completion status)."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class EvaluationAssignment(Base):
    """평가 배정 모델.

    Evaluation assignment model.
    Immutable once the cycle's collection phase is locked, except for the
    status transition to COMPLETED.

    Attributes:
        id: 고유 식별자 UUID
        organization_id: 소속 조직 FK
        cycle_id: 평가 주기 FK
        evaluator_id: 평가자 FK
        evaluatee_id: 피평가자 FK
        evaluation_type: 평가자 유형 (SELF, MANAGER_TO_EMPLOYEE, PEER, EMPLOYEE_TO_MANAGER)
        status: 상태 (PENDING, IN_PROGRESS, COMPLETED, EXPIRED)
        completed_at: 완료 일시 UTC

    Relationships:
        responses: 응답 목록
    """

    __tablename__ = "evaluation_assignments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    cycle_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("performance_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    evaluator_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    evaluatee_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    evaluation_type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=AssignmentStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    responses = relationship("EvaluationResponse", back_populates="assignment", cascade="all, delete-orphan")


class EvaluationResponse(Base):
    """평가 응답 모델 — 문항별 점수/서술 응답.

    Evaluation response model — one answer to one question.
    normalized_score is on the 0–5 scale; when it is null the raw rating is used.

    Constraints:
        uq_eval_response_assignment_question: (assignment_id, question_id) — 문항당 1개 응답
    """

    __tablename__ = "evaluation_responses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assignment_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("evaluation_assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("cycle_questions.id", ondelete="CASCADE"), nullable=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    normalized_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    text_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("assignment_id", "question_id", name="uq_eval_response_assignment_question"),
    )

    assignment = relationship("EvaluationAssignment", back_populates="responses")
