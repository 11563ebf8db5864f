"""캘리브레이션 및 잠재력 서비스 테스트.

Calibration manager tests — calibrate / revert round trip, calibration
sessions, potential rating and the nine-box position kept in step with the
effective score.
"""

import uuid

import pytest

from talent_engine.models.rating import AuditAction, SessionStatus
from talent_engine.schemas.rating import CalibrationSessionCreate, PotentialRequest
from talent_engine.services.calibration_service import calibration_service
from talent_engine.services.rating_service import rating_service
from talent_engine.utils.exceptions import BadRequestError, NotFoundError
from tests.conftest import create_cycle

ACTOR = "hr@test.com"
REASON = "strong Q4 recovery"


@pytest.fixture
async def rating(db, org, employee, scored_cycle):
    """산출 점수 3.5의 저장된 등급 (A stored rating calculated at 3.5)."""
    result = await rating_service.generate_rating(db, scored_cycle.id, employee.id, org.id, actor=ACTOR)
    await db.commit()
    return result["rating"]


class TestCalibrate:
    """캘리브레이션 테스트."""

    async def test_upgrade_to_exceeds_expectations(self, db, org, rating):
        calibrated = await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR)
        await db.commit()

        assert calibrated.calculated_score == 3.5
        assert calibrated.calculated_level == "meets_expectations"
        assert calibrated.final_score == 4.2
        assert calibrated.final_level == "exceeds_expectations"
        assert calibrated.adjustment_type == "upgrade"
        assert calibrated.adjustment_reason == REASON
        assert calibrated.calibrated is True
        assert calibrated.calibrated_by == ACTOR
        assert calibrated.calibrated_at is not None
        assert calibrated.effective_score == 4.2
        # 잠재력 없음 → 위치 없음 (No potential, no grid position)
        assert calibrated.nine_box_position is None

        detail = await rating_service.get_rating(db, rating.id, org.id)
        assert detail["effective_score"] == 4.2
        assert detail["effective_level"] == "exceeds_expectations"
        assert detail["classification"]["level"] == "exceeds_expectations"

    async def test_calibration_with_full_potential_is_star(self, db, org, rating):
        await calibration_service.rate_potential(
            db, rating.id, org.id, PotentialRequest(aspiration=3, ability=3, engagement=3), ACTOR
        )
        calibrated = await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR)
        assert calibrated.potential_score == 5.0
        assert calibrated.nine_box_position == "star"

    async def test_reason_is_trimmed_and_required(self, db, org, rating):
        with pytest.raises(BadRequestError):
            await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, "too short", ACTOR)
        with pytest.raises(BadRequestError):
            await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, "   padded   ", ACTOR)

        calibrated = await calibration_service.calibrate_rating(db, rating.id, org.id, 3.0, f"  {REASON}  ", ACTOR)
        assert calibrated.adjustment_reason == REASON
        assert calibrated.adjustment_type == "downgrade"
        assert calibrated.final_level == "developing"

    async def test_out_of_range_score_rejected(self, db, org, rating):
        with pytest.raises(BadRequestError):
            await calibration_service.calibrate_rating(db, rating.id, org.id, 5.5, REASON, ACTOR)

    async def test_unknown_or_foreign_rating(self, db, org, rating):
        with pytest.raises(NotFoundError):
            await calibration_service.calibrate_rating(db, uuid.uuid4(), org.id, 4.2, REASON, ACTOR)
        with pytest.raises(NotFoundError):
            await calibration_service.calibrate_rating(db, rating.id, uuid.uuid4(), 4.2, REASON, ACTOR)

    async def test_regeneration_keeps_calibration(self, db, org, employee, scored_cycle, rating):
        await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR)
        await db.commit()

        regenerated = (await rating_service.generate_rating(db, scored_cycle.id, employee.id, org.id))["rating"]
        assert regenerated.id == rating.id
        assert regenerated.calculated_score == 3.5
        assert regenerated.final_score == 4.2
        assert regenerated.calibrated is True
        assert regenerated.adjustment_reason == REASON


class TestRevert:
    """캘리브레이션 되돌리기 테스트."""

    async def test_round_trip_restores_calculated_state(self, db, org, rating):
        await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR)
        reverted = await calibration_service.revert_calibration(db, rating.id, org.id, ACTOR)
        await db.commit()

        assert reverted.final_score is None
        assert reverted.final_level is None
        assert reverted.calibrated is False
        assert reverted.calibrated_by is None
        assert reverted.adjustment_type is None
        assert reverted.adjustment_reason == f"Reverted by {ACTOR}"
        assert reverted.calculated_score == 3.5
        assert reverted.effective_score == 3.5
        assert reverted.effective_level == "meets_expectations"

    async def test_history_records_every_mutation(self, db, org, rating):
        await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR)
        await calibration_service.revert_calibration(db, rating.id, org.id, ACTOR)
        await db.commit()

        history = await calibration_service.get_rating_history(db, rating.id, org.id)
        assert sorted(log.action for log in history) == sorted([
            AuditAction.GENERATED.value,
            AuditAction.CALIBRATED.value,
            AuditAction.CALIBRATION_REVERTED.value,
        ])
        calibrated = next(log for log in history if log.action == AuditAction.CALIBRATED.value)
        assert calibrated.actor == ACTOR
        assert calibrated.details["final_score"] == 4.2
        assert calibrated.details["calculated_score"] == 3.5


class TestPotential:
    """잠재력 평가 및 9-box 테스트."""

    async def test_position_follows_effective_score(self, db, org, rating):
        rated = await calibration_service.rate_potential(
            db, rating.id, org.id, PotentialRequest(potential_score=3.0, notes="ready for more scope"), ACTOR
        )
        assert rated.potential_level == "medium"
        assert rated.nine_box_position == "core_player"
        assert rated.potential_notes == "ready for more scope"

        calibrated = await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR)
        assert calibrated.nine_box_position == "high_performer"

        reverted = await calibration_service.revert_calibration(db, rating.id, org.id, ACTOR)
        assert reverted.nine_box_position == "core_player"

    async def test_factors_override_direct_score(self, db, org, rating):
        rated = await calibration_service.rate_potential(
            db, rating.id, org.id,
            PotentialRequest(potential_score=5.0, aspiration=1, ability=1, engagement=1), ACTOR,
        )
        assert rated.potential_score == 1.0
        assert (rated.potential_aspiration, rated.potential_ability, rated.potential_engagement) == (1, 1, 1)
        assert rated.nine_box_position == "average_performer"

    async def test_malformed_potential_rejected_before_write(self, db, org, rating):
        with pytest.raises(BadRequestError):
            await calibration_service.rate_potential(db, rating.id, org.id, PotentialRequest(aspiration=2), ACTOR)
        with pytest.raises(BadRequestError):
            await calibration_service.rate_potential(db, rating.id, org.id, PotentialRequest(), ACTOR)

        current = await rating_service.get_rating_model(db, rating.id, org.id, for_update=True)
        assert current.potential_score is None

    async def test_clear_potential_removes_position(self, db, org, rating):
        await calibration_service.rate_potential(db, rating.id, org.id, PotentialRequest(potential_score=4.5), ACTOR)
        cleared = await calibration_service.clear_potential(db, rating.id, org.id, ACTOR)
        assert cleared.potential_score is None
        assert cleared.potential_level is None
        assert cleared.nine_box_position is None

    async def test_recalculate_nine_box(self, db, org, rating):
        assert await rating_service.recalculate_nine_box(db, rating.id, org.id) is None

        await calibration_service.rate_potential(db, rating.id, org.id, PotentialRequest(potential_score=4.5), ACTOR)
        recalculated = await rating_service.recalculate_nine_box(db, rating.id, org.id)
        assert recalculated.nine_box_position == "growth_potential"

    async def test_grid_groups_positioned_ratings(self, db, org, scored_cycle, rating):
        await calibration_service.rate_potential(db, rating.id, org.id, PotentialRequest(potential_score=4.5), ACTOR)
        await db.commit()

        grid = await rating_service.get_nine_box_data(db, scored_cycle.id, org.id)
        assert grid["total"] == 1
        assert [member["employee_name"] for member in grid["grid"]["growth_potential"]] == ["Alex Kim"]
        summary = {entry["position"]: entry for entry in grid["summary"]}
        assert summary["growth_potential"]["percent"] == 100


class TestCalibrationSessions:
    """캘리브레이션 세션 테스트."""

    async def test_session_groups_adjustments(self, db, org, scored_cycle, rating):
        session = await calibration_service.create_session(
            db, org.id, CalibrationSessionCreate(cycle_id=scored_cycle.id, name="Engineering review"), ACTOR
        )
        assert session.status == SessionStatus.OPEN.value

        calibrated = await calibration_service.calibrate_rating(
            db, rating.id, org.id, 4.2, REASON, ACTOR, session_id=session.id
        )
        await db.commit()
        assert calibrated.calibration_session_id == session.id

        adjustments = await calibration_service.list_session_adjustments(db, session.id, org.id)
        assert [log.action for log in adjustments] == [AuditAction.CALIBRATED.value]
        assert adjustments[0].rating_id == rating.id

    async def test_closed_session_rejects_calibration(self, db, org, scored_cycle, rating):
        session = await calibration_service.create_session(
            db, org.id, CalibrationSessionCreate(cycle_id=scored_cycle.id, name="Closed"), ACTOR
        )
        closed = await calibration_service.close_session(db, session.id, org.id)
        assert closed.status == SessionStatus.CLOSED.value
        assert closed.closed_at is not None

        with pytest.raises(BadRequestError):
            await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR, session_id=session.id)
        with pytest.raises(BadRequestError):
            await calibration_service.close_session(db, session.id, org.id)

    async def test_session_of_another_cycle_rejected(self, db, org, rating):
        other_cycle = await create_cycle(db, org)
        session = await calibration_service.create_session(
            db, org.id, CalibrationSessionCreate(cycle_id=other_cycle.id, name="Other cycle"), ACTOR
        )
        with pytest.raises(BadRequestError):
            await calibration_service.calibrate_rating(db, rating.id, org.id, 4.2, REASON, ACTOR, session_id=session.id)

    async def test_unknown_session(self, db, org, scored_cycle, rating):
        with pytest.raises(NotFoundError):
            await calibration_service.calibrate_rating(
                db, rating.id, org.id, 4.2, REASON, ACTOR, session_id=uuid.uuid4()
            )
        with pytest.raises(NotFoundError):
            await calibration_service.list_session_adjustments(db, uuid.uuid4(), org.id)
        with pytest.raises(NotFoundError):
            await calibration_service.create_session(
                db, uuid.uuid4(), CalibrationSessionCreate(cycle_id=scored_cycle.id, name="x"), ACTOR
            )
