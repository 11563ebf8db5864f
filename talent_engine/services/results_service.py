"""결과 집계 서비스 — 다면 평가 응답을 평가자 유형별 점수로 집계.

Results Service — Response Aggregator.
Reduces a person's completed assignments into one score per rater type, a
per-competency breakdown with self-vs-others gaps, gap analysis, qualitative
feedback and completeness counters.

The reduction (aggregate_responses) is a pure function over plain data; the
service methods only load rows and hand them over.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.assignment import AssignmentStatus, EvaluationAssignment
from talent_engine.models.cycle import PerformanceCycle
from talent_engine.repositories.assignment_repository import assignment_repository
from talent_engine.repositories.cycle_repository import cycle_repository
from talent_engine.repositories.employee_repository import employee_repository
from talent_engine.services.scoring import RATER_TYPE_KEYS, ComponentScores
from talent_engine.utils.exceptions import NotFoundError
from talent_engine.utils.numbers import mean, round2

STRENGTH_THRESHOLD: float = 4.0
GAP_ANALYSIS_SIZE: int = 3
SELF_AWARENESS_GAP: float = 0.5


@dataclass(frozen=True)
class ResponseData:
    question_id: UUID
    rating: int | None = None
    normalized_score: float | None = None
    text_response: str | None = None

    @property
    def score(self) -> float | None:
        # 정규화 점수가 없으면 원점수 사용 (Fall back to the raw rating)
        if self.normalized_score is not None:
            return self.normalized_score
        if self.rating is not None:
            return float(self.rating)
        return None


@dataclass(frozen=True)
class AssignmentData:
    evaluation_type: str
    status: str
    responses: tuple[ResponseData, ...] = ()
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AggregatedResults:
    """한 피평가자의 집계 결과 (Aggregated results of one evaluatee)."""

    scores: ComponentScores
    overall_avg_score: float
    competency_scores: list[dict[str, Any]] = field(default_factory=list)
    gap_analysis: dict[str, Any] = field(default_factory=dict)
    qualitative_feedback: list[dict[str, Any]] = field(default_factory=list)
    total_evaluations: int = 0
    completed_evaluations: int = 0
    evaluation_completeness: float = 0.0


def to_assignment_data(assignment: EvaluationAssignment) -> AssignmentData:
    return AssignmentData(
        evaluation_type=assignment.evaluation_type,
        status=assignment.status,
        responses=tuple(
            ResponseData(
                question_id=response.question_id,
                rating=response.rating,
                normalized_score=response.normalized_score,
                text_response=response.text_response,
            )
            for response in assignment.responses
        ),
        updated_at=assignment.updated_at,
    )


def _average_by_rater(
    assignments: Sequence[AssignmentData],
    question_filter: set[UUID] | None = None,
) -> ComponentScores:
    # 배정별 평균 → 평가자 유형별 평균 (Average per assignment, then per rater type)
    per_type: dict[str, list[float]] = {key: [] for key in RATER_TYPE_KEYS.values()}
    for assignment in assignments:
        key = RATER_TYPE_KEYS.get(assignment.evaluation_type)
        if key is None or assignment.status != AssignmentStatus.COMPLETED.value:
            continue
        scores = [
            response.score
            for response in assignment.responses
            if response.score is not None
            and (question_filter is None or response.question_id in question_filter)
        ]
        assignment_avg = mean(scores)
        if assignment_avg is not None:
            per_type[key].append(assignment_avg)

    def _rounded(values: list[float]) -> float | None:
        avg = mean(values)
        return round2(avg) if avg is not None else None

    return ComponentScores(
        self_score=_rounded(per_type["self"]),
        manager_score=_rounded(per_type["manager"]),
        peer_avg_score=_rounded(per_type["peer"]),
        upward_avg_score=_rounded(per_type["upward"]),
    )


def self_vs_others_gap(scores: ComponentScores) -> float | None:
    """자기평가 − 타인평가 평균 (Self minus the mean of present non-self scores)."""
    others = [
        score
        for score in (scores.manager_score, scores.peer_avg_score, scores.upward_avg_score)
        if score is not None
    ]
    if scores.self_score is None or not others:
        return None
    return round2(scores.self_score - mean(others))


def _overall(scores: ComponentScores) -> float:
    avg = mean(scores.present())
    return round2(avg) if avg is not None else 0.0


def perform_gap_analysis(competency_scores: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """강점/개발 영역/자기 인식 격차 분석.

    Top strengths (overall >= 4.0), bottom development areas with priority
    HIGH (< 2.5), MEDIUM (< 3.5) or LOW, and self-awareness lists for
    competencies rated at least 0.5 above or below others.
    """
    by_score_desc = sorted(competency_scores, key=lambda c: c["overall_avg_score"], reverse=True)
    strengths = [
        {
            "competency_code": c["competency_code"],
            "competency_name": c["competency_name"],
            "avg_score": c["overall_avg_score"],
            "highlight": f"Standout strength at {c['overall_avg_score']:.1f}/5.0",
        }
        for c in by_score_desc
        if c["overall_avg_score"] >= STRENGTH_THRESHOLD
    ][:GAP_ANALYSIS_SIZE]

    def _priority(score: float) -> str:
        if score < 2.5:
            return "HIGH"
        if score < 3.5:
            return "MEDIUM"
        return "LOW"

    development_areas = [
        {
            "competency_code": c["competency_code"],
            "competency_name": c["competency_name"],
            "avg_score": c["overall_avg_score"],
            "priority": _priority(c["overall_avg_score"]),
        }
        for c in sorted(competency_scores, key=lambda c: c["overall_avg_score"])[:GAP_ANALYSIS_SIZE]
    ]

    overestimated: list[str] = []
    underestimated: list[str] = []
    for c in competency_scores:
        gap = c["self_vs_others_gap"]
        if gap is None:
            continue
        if gap >= SELF_AWARENESS_GAP:
            overestimated.append(c["competency_name"])
        elif gap <= -SELF_AWARENESS_GAP:
            underestimated.append(c["competency_name"])

    return {
        "strengths": strengths,
        "development_areas": development_areas,
        "self_awareness_gap": {"overestimated": overestimated, "underestimated": underestimated},
    }


def aggregate_responses(
    assignments: Sequence[AssignmentData],
    competencies: Sequence[dict[str, Any]] | None = None,
    question_competency: dict[UUID, str] | None = None,
) -> AggregatedResults:
    """배정 목록을 집계 결과로 축약합니다 (순수 함수).

    Reduce one evaluatee's assignments into AggregatedResults. Only COMPLETED
    assignments contribute scores; all assignments count toward completeness.
    Zero completed assignments yield all-null component scores and an overall
    score of 0.

    Args:
        assignments: 피평가자의 모든 배정 (Every assignment where the person is rated)
        competencies: 주기 역량 스냅샷 [{code, name, category}] (Cycle competency snapshot)
        question_competency: 문항 ID → 역량 코드 (Question id to competency code)

    Returns:
        AggregatedResults: 집계 결과 (Aggregated results)
    """
    question_competency = question_competency or {}
    scores = _average_by_rater(assignments)

    competency_scores: list[dict[str, Any]] = []
    for competency in competencies or []:
        questions = {qid for qid, code in question_competency.items() if code == competency["code"]}
        comp_scores = _average_by_rater(assignments, questions)
        competency_scores.append({
            "competency_code": competency["code"],
            "competency_name": competency.get("name", competency["code"]),
            "competency_category": competency.get("category"),
            "self_score": comp_scores.self_score,
            "manager_score": comp_scores.manager_score,
            "peer_avg_score": comp_scores.peer_avg_score,
            "upward_avg_score": comp_scores.upward_avg_score,
            "overall_avg_score": _overall(comp_scores),
            "self_vs_others_gap": self_vs_others_gap(comp_scores),
        })

    qualitative_feedback: list[dict[str, Any]] = []
    for assignment in assignments:
        if assignment.status != AssignmentStatus.COMPLETED.value:
            continue
        comments = [
            response.text_response.strip()
            for response in assignment.responses
            if response.text_response and response.text_response.strip()
        ]
        if comments:
            qualitative_feedback.append({
                "evaluator_type": assignment.evaluation_type,
                "comments": " | ".join(comments),
                "timestamp": assignment.updated_at,
            })

    total = len(assignments)
    completed = sum(1 for a in assignments if a.status == AssignmentStatus.COMPLETED.value)

    return AggregatedResults(
        scores=scores,
        overall_avg_score=_overall(scores),
        competency_scores=competency_scores,
        gap_analysis=perform_gap_analysis(competency_scores),
        qualitative_feedback=qualitative_feedback,
        total_evaluations=total,
        completed_evaluations=completed,
        evaluation_completeness=round2(completed / total * 100) if total else 0.0,
    )


class ResultsService:
    """결과 집계 서비스.

    Results service loading assignments for one cycle and reducing them
    through aggregate_responses.
    """

    async def get_cycle(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
    ) -> PerformanceCycle:
        cycle = await cycle_repository.get_by_id(db, cycle_id, organization_id)
        if cycle is None:
            raise NotFoundError("평가 주기를 찾을 수 없습니다 (Cycle not found)")
        return cycle

    async def aggregate_many(
        self,
        db: AsyncSession,
        cycle: PerformanceCycle,
        evaluatee_ids: Sequence[UUID],
    ) -> dict[UUID, AggregatedResults]:
        """여러 피평가자를 한 번의 조회로 집계 (Aggregate several evaluatees from one query)."""
        assignments = await assignment_repository.get_for_evaluatees(db, cycle.id, evaluatee_ids)
        question_competency = await cycle_repository.get_question_competency_map(db, cycle.id)

        grouped: dict[UUID, list[AssignmentData]] = {evaluatee_id: [] for evaluatee_id in evaluatee_ids}
        for assignment in assignments:
            grouped.setdefault(assignment.evaluatee_id, []).append(to_assignment_data(assignment))

        return {
            evaluatee_id: aggregate_responses(rows, cycle.competency_snapshot, question_competency)
            for evaluatee_id, rows in grouped.items()
        }

    async def aggregate_for_evaluatee(
        self,
        db: AsyncSession,
        cycle: PerformanceCycle,
        evaluatee_id: UUID,
    ) -> AggregatedResults:
        results = await self.aggregate_many(db, cycle, [evaluatee_id])
        return results[evaluatee_id]

    async def get_evaluatee_results(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        evaluatee_id: UUID,
        organization_id: UUID,
    ) -> dict:
        """피평가자의 360° 결과 조회 (Consolidated 360° results of one evaluatee)."""
        cycle = await self.get_cycle(db, cycle_id, organization_id)
        evaluatee = await employee_repository.get_by_id(db, evaluatee_id, organization_id)
        if evaluatee is None:
            raise NotFoundError("피평가자를 찾을 수 없습니다 (Evaluatee not found)")

        results = await self.aggregate_for_evaluatee(db, cycle, evaluatee_id)
        return {
            "evaluatee_id": str(evaluatee.id),
            "evaluatee_name": evaluatee.full_name,
            "evaluatee_position": evaluatee.position,
            "cycle_id": str(cycle.id),
            "cycle_name": cycle.name,
            "self_score": results.scores.self_score,
            "manager_score": results.scores.manager_score,
            "peer_avg_score": results.scores.peer_avg_score,
            "upward_avg_score": results.scores.upward_avg_score,
            "overall_avg_score": results.overall_avg_score,
            "competency_scores": results.competency_scores,
            "gap_analysis": results.gap_analysis,
            "qualitative_feedback": results.qualitative_feedback,
            "total_evaluations": results.total_evaluations,
            "completed_evaluations": results.completed_evaluations,
            "evaluation_completeness": results.evaluation_completeness,
        }

    async def list_evaluatees_in_cycle(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
    ) -> list[dict]:
        """주기의 모든 피평가자와 기본 통계, 점수 내림차순 (Evaluatees with basic stats, best first)."""
        cycle = await self.get_cycle(db, cycle_id, organization_id)
        evaluatee_ids = await assignment_repository.list_evaluatee_ids(db, cycle.id)
        employees = await employee_repository.get_many(db, evaluatee_ids)
        results = await self.aggregate_many(db, cycle, evaluatee_ids)

        rows = []
        for evaluatee_id in evaluatee_ids:
            employee = employees.get(evaluatee_id)
            result = results[evaluatee_id]
            rows.append({
                "evaluatee_id": str(evaluatee_id),
                "evaluatee_name": employee.full_name if employee else None,
                "evaluatee_position": employee.position if employee else None,
                "overall_avg_score": result.overall_avg_score,
                "evaluation_completeness": result.evaluation_completeness,
                "total_evaluations": result.total_evaluations,
                "completed_evaluations": result.completed_evaluations,
            })
        rows.sort(key=lambda row: row["overall_avg_score"], reverse=True)
        return rows


results_service: ResultsService = ResultsService()
