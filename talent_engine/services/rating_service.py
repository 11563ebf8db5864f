"""성과 등급 서비스 — 등급 생성 오케스트레이션.

Rating Service — Rating Orchestrator.
Runs aggregation → weight resolution → weighted scoring → classification and
upserts one PerformanceRating per (cycle, evaluatee). Bulk generation fans out
in bounded concurrent chunks, one session per evaluatee, and reports every
failure instead of aborting.
"""

import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talent_engine.config import settings
from talent_engine.database import get_session_factory
from talent_engine.models.organization import Employee
from talent_engine.models.rating import AuditAction, PerformanceRating
from talent_engine.repositories.assignment_repository import assignment_repository
from talent_engine.repositories.calibration_repository import rating_audit_log_repository
from talent_engine.repositories.employee_repository import employee_repository
from talent_engine.repositories.rating_repository import rating_repository
from talent_engine.services.classification import classify
from talent_engine.services.nine_box import NineBoxPosition, position_for_scores
from talent_engine.services.rating_config_service import RatingContext, rating_config_service
from talent_engine.services.results_service import results_service
from talent_engine.services.scoring import calculate_weighted_score
from talent_engine.utils.batch import settle_in_chunks
from talent_engine.utils.exceptions import NotFoundError, error_message
from talent_engine.utils.numbers import percent

logger = logging.getLogger(__name__)


async def write_audit(
    db: AsyncSession,
    rating: PerformanceRating,
    action: AuditAction,
    actor: str | None,
    details: dict[str, Any] | None = None,
    session_id: UUID | None = None,
) -> None:
    """등급 변경 감사 로그를 기록합니다 (Append one audit row for a rating mutation)."""
    await rating_audit_log_repository.create(db, {
        "organization_id": rating.organization_id,
        "rating_id": rating.id,
        "cycle_id": rating.cycle_id,
        "employee_id": rating.employee_id,
        "action": action.value,
        "actor": actor,
        "session_id": session_id,
        "details": details,
    })


def refresh_nine_box(rating: PerformanceRating) -> None:
    """유효 점수와 잠재력으로 9-box 위치를 다시 계산합니다 (Re-derive the stored grid position)."""
    rating.nine_box_position = position_for_scores(rating.effective_score, rating.potential_score)


class RatingService:
    """성과 등급 서비스.

    Performance rating service: single and bulk generation, rating detail,
    distribution and nine-box read models.
    """

    async def generate_rating(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        employee_id: UUID,
        organization_id: UUID,
        context: RatingContext | None = None,
        actor: str | None = None,
    ) -> dict:
        """한 피평가자의 등급을 생성 또는 갱신합니다.

        Generate (or regenerate) one evaluatee's rating. Only machine-derived
        columns are written; calibration and potential columns are left as
        they are. If a potential score exists the nine-box position is
        re-derived from the new effective score.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            cycle_id: 평가 주기 ID (Cycle id)
            employee_id: 피평가자 ID (Evaluatee id)
            organization_id: 조직 ID (Tenant id)
            context: 미리 해석된 설정, None이면 새로 해석 (Pre-resolved context)
            actor: 실행자 (Acting user, recorded in the audit log)

        Returns:
            dict: {"rating": PerformanceRating, "classification": dict}

        Raises:
            NotFoundError: 주기 또는 피평가자가 없는 경우 (Unknown cycle or evaluatee)
        """
        cycle = await results_service.get_cycle(db, cycle_id, organization_id)
        employee = await employee_repository.get_by_id(db, employee_id, organization_id)
        if employee is None:
            raise NotFoundError("피평가자를 찾을 수 없습니다 (Evaluatee not found)")

        if context is None:
            context = await rating_config_service.get_context(db, organization_id, cycle)

        results = await results_service.aggregate_for_evaluatee(db, cycle, employee_id)
        score = calculate_weighted_score(results.scores, context.weights)
        classification = classify(score, context.levels)

        rating = await rating_repository.upsert_calculated(db, {
            "organization_id": organization_id,
            "cycle_id": cycle.id,
            "employee_id": employee_id,
            "calculated_score": score,
            "calculated_level": classification["level"],
            "self_score": results.scores.self_score,
            "manager_score": results.scores.manager_score,
            "peer_avg_score": results.scores.peer_avg_score,
            "upward_avg_score": results.scores.upward_avg_score,
            "evaluation_completeness": results.evaluation_completeness,
            "total_evaluations": results.total_evaluations,
            "completed_evaluations": results.completed_evaluations,
        })

        if rating.potential_score is not None:
            refresh_nine_box(rating)
            await db.flush()

        await write_audit(db, rating, AuditAction.GENERATED, actor, {
            "calculated_score": score,
            "calculated_level": classification["level"],
            "weights": dict(context.weights),
            "weights_source": context.weights_source,
        })
        return {"rating": rating, "classification": classification}

    async def generate_ratings_for_cycle(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        chunk_size: int | None = None,
        actor: str | None = None,
    ) -> dict:
        """주기의 모든 피평가자 등급을 청크 단위로 생성합니다.

        Generate ratings for every evaluatee of the cycle. The rating context is
        resolved once; evaluatees run in concurrent chunks, each in its own
        session and transaction. A failing evaluatee is recorded and never
        stops the batch.

        Args:
            db: 주기/설정 조회용 세션 (Session for the cycle and config lookups)
            cycle_id: 평가 주기 ID (Cycle id)
            organization_id: 조직 ID (Tenant id)
            session_factory: 인원별 세션 팩토리 (Factory for per-evaluatee sessions)
            chunk_size: 동시 처리 수, 기본값은 설정값 (Concurrency per chunk)
            actor: 실행자 (Acting user)

        Returns:
            dict: {cycle_id, total, success_count, failed_count, errors[{employee_id, error}]}
        """
        cycle = await results_service.get_cycle(db, cycle_id, organization_id)
        context = await rating_config_service.get_context(db, organization_id, cycle)
        evaluatee_ids = await assignment_repository.list_evaluatee_ids(db, cycle.id)
        factory = session_factory or get_session_factory()

        async def _generate_one(employee_id: UUID) -> dict:
            async with factory() as item_db:
                result = await self.generate_rating(
                    item_db, cycle.id, employee_id, organization_id, context=context, actor=actor
                )
                await item_db.commit()
                return result

        outcomes = await settle_in_chunks(
            evaluatee_ids, _generate_one, chunk_size or settings.RATING_BULK_CHUNK_SIZE
        )

        errors: list[dict[str, str]] = []
        for outcome in outcomes:
            if outcome.ok:
                continue
            message = error_message(outcome.error)
            logger.warning("Rating generation failed for employee %s in cycle %s: %s", outcome.item, cycle.id, message)
            errors.append({"employee_id": str(outcome.item), "error": message})

        success_count = len(outcomes) - len(errors)
        logger.info(
            "Bulk rating generation for cycle %s: %d succeeded, %d failed",
            cycle.id, success_count, len(errors),
        )
        return {
            "cycle_id": str(cycle.id),
            "total": len(outcomes),
            "success_count": success_count,
            "failed_count": len(errors),
            "errors": errors,
        }

    async def get_rating_model(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
        for_update: bool = False,
    ) -> PerformanceRating:
        rating = await rating_repository.get_by_id(db, rating_id, organization_id, for_update=for_update)
        if rating is None:
            raise NotFoundError("성과 등급을 찾을 수 없습니다 (Rating not found)")
        return rating

    async def get_rating(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
    ) -> dict:
        """등급 상세 — 유효 점수/등급 및 분류 포함 (Rating detail with effective score and classification)."""
        rating = await self.get_rating_model(db, rating_id, organization_id)
        employee = await employee_repository.get_by_id(db, rating.employee_id)
        context = await rating_config_service.get_context(db, organization_id)
        return self.build_rating_response(rating, employee, context)

    async def recalculate_nine_box(
        self,
        db: AsyncSession,
        rating_id: UUID,
        organization_id: UUID,
    ) -> PerformanceRating | None:
        """9-box 위치 재계산 — 잠재력이 없으면 None (Re-derive the position; None without potential)."""
        rating = await self.get_rating_model(db, rating_id, organization_id, for_update=True)
        if rating.potential_score is None:
            return None
        refresh_nine_box(rating)
        await db.flush()
        return rating

    async def get_rating_distribution(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        department_ids: Sequence[UUID] | None = None,
    ) -> dict:
        """산출 등급 대비 최종 등급 분포 (Calculated vs final level counts and calibration progress)."""
        cycle = await results_service.get_cycle(db, cycle_id, organization_id)
        context = await rating_config_service.get_context(db, organization_id, cycle)
        rows = await rating_repository.list_with_employees(db, cycle.id, organization_id, department_ids)

        counts: dict[str, dict[str, int]] = {band["level"]: {"calculated": 0, "final": 0} for band in context.levels}
        for rating, _ in rows:
            counts.setdefault(rating.calculated_level, {"calculated": 0, "final": 0})["calculated"] += 1
            counts.setdefault(rating.effective_level, {"calculated": 0, "final": 0})["final"] += 1

        total = len(rows)
        calibrated_count = sum(1 for rating, _ in rows if rating.calibrated)
        return {
            "cycle_id": str(cycle.id),
            "total": total,
            "calibrated_count": calibrated_count,
            "calibration_progress": percent(calibrated_count, total),
            "distribution": [
                {
                    "level": level,
                    "calculated_count": level_counts["calculated"],
                    "calculated_percent": percent(level_counts["calculated"], total),
                    "final_count": level_counts["final"],
                    "final_percent": percent(level_counts["final"], total),
                }
                for level, level_counts in counts.items()
            ],
        }

    async def get_nine_box_data(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        department_ids: Sequence[UUID] | None = None,
    ) -> dict:
        """9-box 그리드 데이터 — 위치별 인원, 수, 비율.

        Nine-box grid: positioned ratings grouped by position, with a
        per-position count and percent. Scoped by tenant and, optionally, by
        department.
        """
        cycle = await results_service.get_cycle(db, cycle_id, organization_id)
        rows = await rating_repository.list_with_employees(
            db, cycle.id, organization_id, department_ids, only_positioned=True
        )

        grid: dict[str, list[dict]] = {position.value: [] for position in NineBoxPosition}
        for rating, employee in rows:
            grid.setdefault(rating.nine_box_position, []).append({
                "rating_id": str(rating.id),
                "employee_id": str(employee.id),
                "employee_name": employee.full_name,
                "employee_position": employee.position,
                "department_id": str(employee.department_id) if employee.department_id else None,
                "effective_score": rating.effective_score,
                "effective_level": rating.effective_level,
                "potential_score": rating.potential_score,
                "potential_level": rating.potential_level,
            })

        total = len(rows)
        return {
            "cycle_id": str(cycle.id),
            "total": total,
            "grid": grid,
            "summary": [
                {"position": position, "count": len(members), "percent": percent(len(members), total)}
                for position, members in grid.items()
            ],
        }

    def build_rating_response(
        self,
        rating: PerformanceRating,
        employee: Employee | None,
        context: RatingContext,
    ) -> dict:
        return {
            "id": str(rating.id),
            "cycle_id": str(rating.cycle_id),
            "employee_id": str(rating.employee_id),
            "employee_name": employee.full_name if employee else None,
            "employee_position": employee.position if employee else None,
            "department_id": str(employee.department_id) if employee and employee.department_id else None,
            "calculated_score": rating.calculated_score,
            "calculated_level": rating.calculated_level,
            "final_score": rating.final_score,
            "final_level": rating.final_level,
            "effective_score": rating.effective_score,
            "effective_level": rating.effective_level,
            "classification": classify(rating.effective_score, context.levels),
            "self_score": rating.self_score,
            "manager_score": rating.manager_score,
            "peer_avg_score": rating.peer_avg_score,
            "upward_avg_score": rating.upward_avg_score,
            "evaluation_completeness": rating.evaluation_completeness,
            "total_evaluations": rating.total_evaluations,
            "completed_evaluations": rating.completed_evaluations,
            "potential_score": rating.potential_score,
            "potential_level": rating.potential_level,
            "potential_aspiration": rating.potential_aspiration,
            "potential_ability": rating.potential_ability,
            "potential_engagement": rating.potential_engagement,
            "potential_rated_by": rating.potential_rated_by,
            "potential_rated_at": rating.potential_rated_at,
            "potential_notes": rating.potential_notes,
            "nine_box_position": rating.nine_box_position,
            "calibrated": rating.calibrated,
            "calibrated_by": rating.calibrated_by,
            "calibrated_at": rating.calibrated_at,
            "calibration_session_id": str(rating.calibration_session_id) if rating.calibration_session_id else None,
            "adjustment_reason": rating.adjustment_reason,
            "adjustment_type": rating.adjustment_type,
            "is_persisted": True,
        }


rating_service: RatingService = RatingService()
