"""성과 등급 관련 SQLAlchemy ORM 모델 정의.

Performance rating SQLAlchemy ORM model definitions.

Tables:
    - performance_rating_configs: 조직별 등급 척도/가중치 설정 (Per-tenant scale and weights)
    - performance_ratings: 주기×직원 성과 등급 (One rating per cycle and evaluatee)
    - calibration_sessions: 캘리브레이션 세션 (Groups of calibrations made together)
    - rating_audit_logs: 등급 변경 감사 로그 (Audit trail of rating mutations)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Integer, Float, Boolean, DateTime, Text, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from talent_engine.database import Base, JSONVariant


class AdjustmentType(str, Enum):
    """캘리브레이션 조정 유형 (Direction of a calibration adjustment)."""

    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    NO_CHANGE = "no_change"


class AuditAction(str, Enum):
    """감사 로그 액션 (Audited rating mutations)."""

    GENERATED = "generated"
    CALIBRATED = "calibrated"
    CALIBRATION_REVERTED = "calibration_reverted"
    POTENTIAL_RATED = "potential_rated"
    POTENTIAL_CLEARED = "potential_cleared"


class SessionStatus(str, Enum):
    """캘리브레이션 세션 상태."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PerformanceRatingConfig(Base):
    """조직별 성과 등급 설정 — 조직당 1개.

    Per-tenant performance rating configuration.

    Attributes:
        scale_type: 척도 유형 (three_level, five_level, custom)
        levels: 점수 구간 목록 [{level, label, label_short, min_score, max_score, color, ...}]
        evaluator_weights: 평가자 유형별 가중치 {self, manager, peer, upward}
    """

    __tablename__ = "performance_rating_configs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, unique=True)
    scale_type: Mapped[str] = mapped_column(String(20), default="five_level")
    levels: Mapped[list | None] = mapped_column(JSONVariant, nullable=True)
    evaluator_weights: Mapped[dict | None] = mapped_column(JSONVariant, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))


class PerformanceRating(Base):
    """성과 등급 모델 — (주기, 직원)당 1행.

    Performance rating model, the central persisted aggregate.
    calculated_* columns are written only by generation; final_* and the
    calibration columns only by calibration; potential_* only by potential rating.

    Attributes:
        calculated_score / calculated_level: 산출 점수/등급 (Machine-derived)
        final_score / final_level: 캘리브레이션 점수/등급 (Null unless calibrated)
        self_score, manager_score, peer_avg_score, upward_avg_score: 평가자 유형별 점수
        evaluation_completeness: 완료율 % (Completed / total assignments)
        potential_*: 잠재력 점수, 등급, AAE 요인, 평가자, 메모
        nine_box_position: 9-box 위치 (Always derived)
        calibrated, calibrated_by, calibrated_at, calibration_session_id,
        adjustment_reason, adjustment_type: 캘리브레이션 감사 필드

    Constraints:
        uq_perf_rating_cycle_employee: (cycle_id, employee_id) — upsert 키
    """

    __tablename__ = "performance_ratings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    cycle_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("performance_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)

    # 산출 결과 — Machine-derived result
    calculated_score: Mapped[float] = mapped_column(Float, default=0.0)
    calculated_level: Mapped[str] = mapped_column(String(50), nullable=False)
    final_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_level: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # 평가자 유형별 점수 — Component scores
    self_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    manager_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    peer_avg_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    upward_avg_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    # 완료율 — Completeness counters
    evaluation_completeness: Mapped[float] = mapped_column(Float, default=0.0)
    total_evaluations: Mapped[int] = mapped_column(Integer, default=0)
    completed_evaluations: Mapped[int] = mapped_column(Integer, default=0)

    # 잠재력 — Potential axis
    potential_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    potential_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    potential_aspiration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    potential_ability: Mapped[int | None] = mapped_column(Integer, nullable=True)
    potential_engagement: Mapped[int | None] = mapped_column(Integer, nullable=True)
    potential_rated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    potential_rated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    potential_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    nine_box_position: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # 캘리브레이션 — Calibration audit fields
    calibrated: Mapped[bool] = mapped_column(Boolean, default=False)
    calibrated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    calibrated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    calibration_session_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("calibration_sessions.id", ondelete="SET NULL"), nullable=True)
    adjustment_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    adjustment_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("cycle_id", "employee_id", name="uq_perf_rating_cycle_employee"),
    )

    @property
    def effective_score(self) -> float:
        """캘리브레이션 점수 우선, 없으면 산출 점수 (final_score ?? calculated_score)."""
        return self.final_score if self.final_score is not None else self.calculated_score

    @property
    def effective_level(self) -> str:
        return self.final_level if self.final_level is not None else self.calculated_level


class CalibrationSession(Base):
    """캘리브레이션 세션 — 함께 진행한 조정 묶음.

    Calibration session grouping calibrations made together for one cycle.
    Only OPEN sessions accept new calibrations.
    """

    __tablename__ = "calibration_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    cycle_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("performance_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=SessionStatus.OPEN.value)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class RatingAuditLog(Base):
    """등급 감사 로그 — 생성/캘리브레이션/잠재력 변경 기록.

    Rating audit log row. details carries the before/after values of the action.
    """

    __tablename__ = "rating_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    rating_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("performance_ratings.id", ondelete="CASCADE"), nullable=False, index=True)
    cycle_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    employee_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    actor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    session_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    details: Mapped[dict | None] = mapped_column(JSONVariant, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
