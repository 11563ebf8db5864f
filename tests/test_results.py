"""응답 집계 및 청크 배치 유틸리티 테스트.

Response aggregation and chunked batch utility tests (no database).
"""

import asyncio
import uuid

import pytest

from talent_engine.services.results_service import AssignmentData, ResponseData, aggregate_responses
from talent_engine.utils.batch import chunked, settle_in_chunks

Q_COMM = uuid.uuid4()
Q_EXEC = uuid.uuid4()
QUESTION_COMPETENCY = {Q_COMM: "COMM", Q_EXEC: "EXEC"}
COMPETENCIES = [
    {"code": "COMM", "name": "Communication", "category": "core"},
    {"code": "EXEC", "name": "Execution", "category": "core"},
]


def assignment(rater_type: str, comm: float | None, exec_: float | None, status: str = "COMPLETED", text: str | None = None):
    responses = []
    if comm is not None:
        responses.append(ResponseData(question_id=Q_COMM, rating=int(comm), normalized_score=comm, text_response=text))
    if exec_ is not None:
        responses.append(ResponseData(question_id=Q_EXEC, rating=int(exec_), normalized_score=exec_))
    return AssignmentData(evaluation_type=rater_type, status=status, responses=tuple(responses))


class TestAggregateResponses:
    """평가자 유형별 집계 테스트."""

    def test_scores_per_rater_type(self):
        results = aggregate_responses(
            [
                assignment("SELF", 4, 4),
                assignment("MANAGER_TO_EMPLOYEE", 3, 3),
                assignment("PEER", 4, 3),
                assignment("PEER", 3, 3),
            ],
            COMPETENCIES,
            QUESTION_COMPETENCY,
        )
        assert results.scores.self_score == 4.0
        assert results.scores.manager_score == 3.0
        # 배정별 평균(3.5, 3.0)의 평균 (Mean of per-assignment means)
        assert results.scores.peer_avg_score == 3.25
        assert results.scores.upward_avg_score is None

    def test_only_completed_assignments_score(self):
        results = aggregate_responses([
            assignment("SELF", 5, 5),
            assignment("MANAGER_TO_EMPLOYEE", 1, 1, status="IN_PROGRESS"),
        ])
        assert results.scores.manager_score is None
        assert results.total_evaluations == 2
        assert results.completed_evaluations == 1
        assert results.evaluation_completeness == 50.0

    def test_no_completed_assignments(self):
        results = aggregate_responses([assignment("SELF", 5, 5, status="PENDING")])
        assert results.scores.present() == []
        assert results.overall_avg_score == 0.0
        assert results.evaluation_completeness == 0.0

    def test_raw_rating_used_without_normalized_score(self):
        data = AssignmentData(
            evaluation_type="SELF",
            status="COMPLETED",
            responses=(ResponseData(question_id=Q_COMM, rating=2),),
        )
        assert aggregate_responses([data]).scores.self_score == 2.0

    def test_competency_breakdown_and_gap(self):
        results = aggregate_responses(
            [assignment("SELF", 5, 2), assignment("MANAGER_TO_EMPLOYEE", 3, 2)],
            COMPETENCIES,
            QUESTION_COMPETENCY,
        )
        comm, exec_ = results.competency_scores
        assert comm["competency_code"] == "COMM"
        assert comm["self_vs_others_gap"] == 2.0
        assert exec_["self_vs_others_gap"] == 0.0
        assert results.gap_analysis["self_awareness_gap"]["overestimated"] == ["Communication"]
        assert results.gap_analysis["development_areas"][0]["competency_code"] == "EXEC"
        assert results.gap_analysis["development_areas"][0]["priority"] == "HIGH"

    def test_qualitative_feedback_from_completed_only(self):
        results = aggregate_responses([
            assignment("PEER", 4, 4, text="  Great collaborator "),
            assignment("PEER", 4, 4, status="IN_PROGRESS", text="draft"),
        ])
        assert [entry["comments"] for entry in results.qualitative_feedback] == ["Great collaborator"]


class TestSettleInChunks:
    """청크 단위 settle-all 실행 테스트."""

    def test_chunked(self):
        assert [list(chunk) for chunk in chunked(list(range(23)), 10)] == [
            list(range(10)), list(range(10, 20)), [20, 21, 22]
        ]
        with pytest.raises(ValueError):
            chunked([1], 0)

    async def test_failures_are_collected_not_raised(self):
        async def worker(item: int) -> int:
            await asyncio.sleep(0)
            if item == 16:
                raise RuntimeError("corrupted")
            return item * 2

        outcomes = await settle_in_chunks(list(range(23)), worker, 10)
        assert len(outcomes) == 23
        assert [outcome.item for outcome in outcomes] == list(range(23))
        failed = [outcome for outcome in outcomes if not outcome.ok]
        assert len(failed) == 1
        assert failed[0].item == 16
        assert str(failed[0].error) == "corrupted"
        assert outcomes[3].value == 6

    async def test_chunks_bound_concurrency(self):
        running = 0
        peak = 0

        async def worker(item: int) -> None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0)
            running -= 1

        await settle_in_chunks(list(range(25)), worker, 4)
        assert peak <= 4
