"""캘리브레이션 서비스 — 최종 점수 조정, 되돌리기, 잠재력 평가.

Calibration Service — Calibration Manager.
Calibration only writes the final_* and calibration columns, never the
calculated ones, so it can interleave safely with rating generation. Every
mutation re-reads the row under a lock, re-derives the nine-box position
from the latest effective score and writes an audit record, all inside the
caller's single transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.rating import AuditAction, CalibrationSession, PerformanceRating, RatingAuditLog, SessionStatus
from talent_engine.repositories.calibration_repository import calibration_session_repository, rating_audit_log_repository
from talent_engine.schemas.rating import CalibrationSessionCreate, PotentialRequest
from talent_engine.services.classification import calculate_adjustment_type, classify
from talent_engine.services.nine_box import score_to_bucket
from talent_engine.services.potential import assess_potential
from talent_engine.services.rating_config_service import rating_config_service
from talent_engine.services.rating_service import rating_service, refresh_nine_box, write_audit
from talent_engine.services.results_service import results_service
from talent_engine.utils.exceptions import BadRequestError, NotFoundError
from talent_engine.utils.numbers import round2

logger = logging.getLogger(__name__)

# 캘리브레이션 사유 최소 길이 (Minimum reason length after strip)
MIN_REASON_LENGTH: int = 10


class CalibrationService:
    """캘리브레이션 서비스.

    Calibration manager: calibrate / revert, potential rating and
    calibration session lifecycle.
    """

    # === 캘리브레이션 ===

    async def _get_open_session(
        self,
        db: AsyncSession,
        session_id: UUID,
        organization_id: UUID,
        cycle_id: UUID,
    ) -> CalibrationSession:
        session = await calibration_session_repository.get_by_id(db, session_id, organization_id)
        if session is None:
            raise NotFoundError("캘리브레이션 세션을 찾을 수 없습니다 (Calibration session not found)")
        if session.cycle_id != cycle_id:
            raise BadRequestError("세션이 다른 평가 주기에 속합니다 (Session belongs to a different cycle)")
        if session.status != SessionStatus.OPEN.value:
            raise BadRequestError("종료된 세션입니다 (Calibration session is closed)")
        return session

    async def calibrate_rating(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
        final_score: float,
        reason: str,
        actor: str,
        session_id: UUID | None = None,
    ) -> PerformanceRating:
        """등급을 캘리브레이션합니다.

        Calibrate a rating: classify the final score, classify the adjustment
        against the calculated score and persist the calibration columns.
        calculated_score and calculated_level are never touched.

        Raises:
            NotFoundError: 등급 또는 세션이 없는 경우 (Unknown rating or session)
            BadRequestError: 점수 범위 오류, 닫힌 세션, 다른 주기의 세션
                             (Out-of-range score, closed or foreign session)
        """
        if not 0 <= final_score <= 5:
            raise BadRequestError("최종 점수는 0–5 사이여야 합니다 (final_score must be between 0 and 5)")
        reason = (reason or "").strip()
        if len(reason) < MIN_REASON_LENGTH:
            raise BadRequestError(
                f"조정 사유는 {MIN_REASON_LENGTH}자 이상이어야 합니다 "
                f"(reason must be at least {MIN_REASON_LENGTH} characters)"
            )

        rating = await rating_service.get_rating_model(db, rating_id, organization_id, for_update=True)
        if session_id is not None:
            await self._get_open_session(db, session_id, organization_id, rating.cycle_id)

        context = await rating_config_service.get_context(db, organization_id)
        final_score = round2(final_score)
        final_level = classify(final_score, context.levels)["level"]
        adjustment_type = calculate_adjustment_type(rating.calculated_score, final_score)

        previous = {"final_score": rating.final_score, "final_level": rating.final_level}
        rating.final_score = final_score
        rating.final_level = final_level
        rating.calibrated = True
        rating.calibrated_by = actor
        rating.calibrated_at = datetime.now(timezone.utc)
        rating.calibration_session_id = session_id
        rating.adjustment_reason = reason
        rating.adjustment_type = adjustment_type
        refresh_nine_box(rating)
        await db.flush()

        await write_audit(db, rating, AuditAction.CALIBRATED, actor, {
            "calculated_score": rating.calculated_score,
            "calculated_level": rating.calculated_level,
            "previous": previous,
            "final_score": final_score,
            "final_level": final_level,
            "adjustment_type": adjustment_type,
            "reason": reason,
        }, session_id=session_id)
        logger.info("Rating %s calibrated by %s: %s -> %s (%s)", rating.id, actor, rating.calculated_score, final_score, adjustment_type)
        return rating

    async def revert_calibration(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
        actor: str,
    ) -> PerformanceRating:
        """캘리브레이션을 되돌려 산출 상태로 복원합니다.

        Clear every calibration column; the reason keeps who reverted.
        """
        rating = await rating_service.get_rating_model(db, rating_id, organization_id, for_update=True)
        previous = {
            "final_score": rating.final_score,
            "final_level": rating.final_level,
            "adjustment_type": rating.adjustment_type,
            "session_id": str(rating.calibration_session_id) if rating.calibration_session_id else None,
        }

        rating.final_score = None
        rating.final_level = None
        rating.calibrated = False
        rating.calibrated_by = None
        rating.calibrated_at = None
        rating.calibration_session_id = None
        rating.adjustment_reason = f"Reverted by {actor}"
        rating.adjustment_type = None
        refresh_nine_box(rating)
        await db.flush()

        await write_audit(db, rating, AuditAction.CALIBRATION_REVERTED, actor, {"previous": previous})
        logger.info("Calibration of rating %s reverted by %s", rating.id, actor)
        return rating

    # === 잠재력 ===

    async def rate_potential(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
        data: PotentialRequest,
        actor: str,
    ) -> PerformanceRating:
        """잠재력을 평가하고 9-box 위치를 즉시 갱신합니다.

        Attach a potential score (direct or from the three factors) and
        immediately re-derive the nine-box position against the latest
        effective performance score.

        Raises:
            BadRequestError: 직접 점수와 세 요인이 모두 없거나 범위 밖 (Malformed input, checked before any write)
            NotFoundError: 등급이 없는 경우 (Unknown rating)
        """
        assessment = assess_potential(data.potential_score, data.aspiration, data.ability, data.engagement)
        rating = await rating_service.get_rating_model(db, rating_id, organization_id, for_update=True)

        rating.potential_score = assessment.score
        rating.potential_level = score_to_bucket(assessment.score).value
        rating.potential_aspiration = assessment.aspiration
        rating.potential_ability = assessment.ability
        rating.potential_engagement = assessment.engagement
        rating.potential_rated_by = actor
        rating.potential_rated_at = datetime.now(timezone.utc)
        rating.potential_notes = data.notes or None
        refresh_nine_box(rating)
        await db.flush()

        await write_audit(db, rating, AuditAction.POTENTIAL_RATED, actor, {
            "potential_score": assessment.score,
            "aspiration": assessment.aspiration,
            "ability": assessment.ability,
            "engagement": assessment.engagement,
            "nine_box_position": rating.nine_box_position,
        })
        return rating

    async def clear_potential(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
        actor: str,
    ) -> PerformanceRating:
        """잠재력 평가를 삭제합니다 (Remove the potential axis and the grid position)."""
        rating = await rating_service.get_rating_model(db, rating_id, organization_id, for_update=True)
        previous = {"potential_score": rating.potential_score, "nine_box_position": rating.nine_box_position}

        rating.potential_score = None
        rating.potential_level = None
        rating.potential_aspiration = None
        rating.potential_ability = None
        rating.potential_engagement = None
        rating.potential_rated_by = None
        rating.potential_rated_at = None
        rating.potential_notes = None
        refresh_nine_box(rating)
        await db.flush()

        await write_audit(db, rating, AuditAction.POTENTIAL_CLEARED, actor, {"previous": previous})
        return rating

    # === 세션 ===

    async def create_session(
        self,
        db: AsyncSession,
        organization_id: UUID,
        data: CalibrationSessionCreate,
        actor: str,
    ) -> CalibrationSession:
        cycle = await results_service.get_cycle(db, data.cycle_id, organization_id)
        return await calibration_session_repository.create(db, {
            "organization_id": organization_id,
            "cycle_id": cycle.id,
            "name": data.name,
            "status": SessionStatus.OPEN.value,
            "created_by": actor,
        })

    async def close_session(
        self,
        db: AsyncSession,
        session_id: UUID,
        organization_id: UUID,
    ) -> CalibrationSession:
        session = await calibration_session_repository.get_by_id(db, session_id, organization_id)
        if session is None:
            raise NotFoundError("캘리브레이션 세션을 찾을 수 없습니다 (Calibration session not found)")
        if session.status == SessionStatus.CLOSED.value:
            raise BadRequestError("이미 종료된 세션입니다 (Calibration session is already closed)")
        return await calibration_session_repository.update(db, session, {
            "status": SessionStatus.CLOSED.value,
            "closed_at": datetime.now(timezone.utc),
        })

    async def list_session_adjustments(
        self,
        db: AsyncSession,
        session_id: UUID,
        organization_id: UUID,
    ) -> Sequence[RatingAuditLog]:
        """세션에서 이루어진 조정 기록 (Audit rows recorded under the session)."""
        session = await calibration_session_repository.get_by_id(db, session_id, organization_id)
        if session is None:
            raise NotFoundError("캘리브레이션 세션을 찾을 수 없습니다 (Calibration session not found)")
        return await rating_audit_log_repository.list_by_session(db, session.id, organization_id)

    async def get_rating_history(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
    ) -> Sequence[RatingAuditLog]:
        """등급 변경 이력, 오래된 순 (Audit trail of one rating, oldest first)."""
        rating = await rating_service.get_rating_model(db, rating_id, organization_id)
        return await rating_audit_log_repository.list_by_rating(db, rating.id)

    def build_session_response(self, session: CalibrationSession) -> dict:
        return {
            "id": str(session.id),
            "cycle_id": str(session.cycle_id),
            "name": session.name,
            "status": session.status,
            "created_by": session.created_by,
            "created_at": session.created_at,
            "closed_at": session.closed_at,
        }

    def build_audit_response(self, log: RatingAuditLog) -> dict:
        return {
            "id": str(log.id),
            "rating_id": str(log.rating_id),
            "employee_id": str(log.employee_id),
            "action": log.action,
            "actor": log.actor,
            "session_id": str(log.session_id) if log.session_id else None,
            "details": log.details,
            "created_at": log.created_at,
        }


calibration_service: CalibrationService = CalibrationService()
