"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for Alembic migrations and
relationship resolution.

Modules:
    organization: 조직 및 직원 (Organization, Employee)
    cycle: 평가 주기 및 문항 (PerformanceCycle, CycleQuestion)
    assignment: 평가 배정 및 응답 (EvaluationAssignment, EvaluationResponse)
    rating: 등급 설정, 성과 등급, 캘리브레이션 세션, 감사 로그
            (PerformanceRatingConfig, PerformanceRating, CalibrationSession, RatingAuditLog)
"""

from talent_engine.models.organization import Organization, Employee
from talent_engine.models.cycle import PerformanceCycle, CycleQuestion
from talent_engine.models.assignment import EvaluationAssignment, EvaluationResponse
from talent_engine.models.rating import PerformanceRatingConfig, PerformanceRating, CalibrationSession, RatingAuditLog

__all__ = [
    "Organization", "Employee",
    "PerformanceCycle", "CycleQuestion",
    "EvaluationAssignment", "EvaluationResponse",
    "PerformanceRatingConfig", "PerformanceRating", "CalibrationSession", "RatingAuditLog",
]
