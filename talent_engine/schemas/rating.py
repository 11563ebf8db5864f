"""성과 등급 Pydantic 요청/응답 스키마.

Performance rating Pydantic request/response schemas: calibration,
potential rating, calibration sessions, hybrid listing and bulk results.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field


class CalibrateRequest(BaseModel):
    """캘리브레이션 요청 스키마.

    Calibration request.

    Attributes:
        final_score: 조정 점수 0–5 (Human-chosen final score)
        reason: 조정 사유, 10자 이상 (Justification, at least 10 characters)
        session_id: 캘리브레이션 세션 ID (Optional grouping session)
    """

    final_score: float = Field(..., ge=0, le=5)  # 조정 점수 (Final score)
    reason: str  # 조정 사유 — 길이는 서비스에서 검증 (Length checked by the service)
    session_id: UUID | None = None  # 세션 ID (Optional session)


class PotentialRequest(BaseModel):
    """잠재력 평가 요청 스키마 — 직접 점수 또는 세 요인.

    Potential rating request: either a direct potential_score (1–5) or all
    three AAE factors (each 1–3). Completeness is checked by the service so
    the error surfaces as a 400 before any write.
    """

    potential_score: float | None = None
    aspiration: int | None = None
    ability: int | None = None
    engagement: int | None = None
    notes: str | None = None


class CalibrationSessionCreate(BaseModel):
    """캘리브레이션 세션 생성 요청."""

    cycle_id: UUID
    name: str = Field(..., min_length=1, max_length=255)


class CalibrationSessionResponse(BaseModel):
    """캘리브레이션 세션 응답."""

    id: str
    cycle_id: str
    name: str
    status: str
    created_by: str
    created_at: datetime
    closed_at: datetime | None = None


class AuditLogResponse(BaseModel):
    """등급 감사 로그 응답."""

    id: str
    rating_id: str
    employee_id: str
    action: str
    actor: str | None = None
    session_id: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime


class BulkGenerateError(BaseModel):
    employee_id: str
    error: str


class BulkGenerateResponse(BaseModel):
    """일괄 생성 결과 — 실패 인원만 재시도 가능.

    Bulk generation summary; errors lists each failed evaluatee so callers
    can retry only that subset.
    """

    cycle_id: str
    total: int
    success_count: int
    failed_count: int
    errors: list[BulkGenerateError] = []


class RatingListParams(BaseModel):
    """등급 목록 조회 조건 (Listing query: paging, sorting and filters)."""

    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=200)
    sort_by: Literal["name", "score", "level"] = "name"
    sort_order: Literal["asc", "desc"] = "asc"
    evaluation_status: Literal["all", "evaluated", "not_evaluated"] = "all"
    potential_status: Literal["all", "assigned", "pending"] = "all"
    search: str | None = None
    department_ids: list[UUID] | None = None
    filter_level: str | None = None
    filter_nine_box: str | None = None
    filter_calibrated: bool | None = None


class ListingStats(BaseModel):
    """목록 대시보드 통계 (Dashboard counters of a listing)."""

    total: int
    evaluated: int
    not_evaluated: int
    potential_assigned: int
    potential_pending: int
    evaluation_progress: int
    potential_progress: int


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class RatingListResponse(BaseModel):
    """하이브리드 목록 응답 (Hybrid listing response)."""

    data: list[dict[str, Any]]
    pagination: Pagination
    stats: ListingStats
    source: Literal["live", "persisted"]  # 진행 중이면 live, 종료면 persisted


class RatingResponse(BaseModel):
    """성과 등급 응답 — 유효 점수/등급과 분류 포함.

    Rating detail: calculated and final scores, the effective score/level
    (final when calibrated, calculated otherwise), component scores,
    potential, nine-box position and calibration metadata.
    """

    id: str | None = None  # 진행 중 주기의 미저장 행은 None (None for unsaved live rows)
    cycle_id: str
    employee_id: str
    employee_name: str | None = None
    employee_position: str | None = None
    department_id: str | None = None
    calculated_score: float
    calculated_level: str | None = None
    final_score: float | None = None
    final_level: str | None = None
    effective_score: float
    effective_level: str | None = None
    classification: dict[str, Any]
    self_score: float | None = None
    manager_score: float | None = None
    peer_avg_score: float | None = None
    upward_avg_score: float | None = None
    evaluation_completeness: float = 0
    total_evaluations: int = 0
    completed_evaluations: int = 0
    potential_score: float | None = None
    potential_level: str | None = None
    potential_aspiration: int | None = None
    potential_ability: int | None = None
    potential_engagement: int | None = None
    potential_rated_by: str | None = None
    potential_rated_at: datetime | None = None
    potential_notes: str | None = None
    nine_box_position: str | None = None
    calibrated: bool = False
    calibrated_by: str | None = None
    calibrated_at: datetime | None = None
    calibration_session_id: str | None = None
    adjustment_reason: str | None = None
    adjustment_type: str | None = None
    is_persisted: bool = True
