"""등급 설정 서비스 테스트 — 척도 프리셋, 가중치 검증, 주기 재정의.

Rating configuration tests — level scale presets, weight validation and the
per-cycle weight override feeding the weighted scorer.
"""

import uuid

import pytest
from pydantic import ValidationError

from talent_engine.schemas.rating_config import CycleWeightsUpdate, EvaluatorWeightsBody, LevelBand, RatingConfigUpdate
from talent_engine.services.classification import THREE_LEVELS
from talent_engine.services.rating_config_service import rating_config_service
from talent_engine.services.rating_service import rating_service
from talent_engine.utils.exceptions import BadRequestError, NotFoundError


class TestRatingConfig:
    """조직 등급 설정 테스트."""

    async def test_defaults_without_saved_config(self, db, org):
        config = await rating_config_service.get_config(db, org.id)
        assert config["is_default"] is True
        assert config["scale_type"] == "five_level"
        assert len(config["levels"]) == 5
        assert config["evaluator_weights"] == {"self": 25.0, "manager": 25.0, "peer": 25.0, "upward": 25.0}

    async def test_three_level_preset(self, db, org, employee, scored_cycle):
        config = await rating_config_service.save_config(db, org.id, RatingConfigUpdate(scale_type="three_level"))
        await db.commit()

        assert config["is_default"] is False
        assert [band["level"] for band in config["levels"]] == [band["level"] for band in THREE_LEVELS]

        # 3.5는 3단계 척도의 중간 구간 (3.5 lands in the middle band of the three-level scale)
        result = await rating_service.generate_rating(db, scored_cycle.id, employee.id, org.id)
        assert result["classification"]["level"] == THREE_LEVELS[1]["level"]

    async def test_custom_scale_requires_levels(self, db, org):
        with pytest.raises(BadRequestError):
            await rating_config_service.save_config(db, org.id, RatingConfigUpdate(scale_type="custom"))

    async def test_invalid_levels_rejected(self, db, org):
        gapped = [
            LevelBand(level="high", label="High", min_score=4.0, max_score=5.0),
            LevelBand(level="low", label="Low", min_score=0.0, max_score=3.0),
        ]
        with pytest.raises(BadRequestError):
            await rating_config_service.save_config(db, org.id, RatingConfigUpdate(scale_type="custom", levels=gapped))

        config = await rating_config_service.get_config(db, org.id)
        assert config["is_default"] is True

    async def test_weights_saved_and_validated(self, db, org):
        weights = EvaluatorWeightsBody(**{"self": 0, "manager": 70, "peer": 30, "upward": 0})
        config = await rating_config_service.save_config(db, org.id, RatingConfigUpdate(evaluator_weights=weights))
        assert config["evaluator_weights"]["manager"] == 70

        with pytest.raises(BadRequestError):
            await rating_config_service.save_config(
                db, org.id, RatingConfigUpdate(evaluator_weights=EvaluatorWeightsBody(manager=50))
            )

        context = await rating_config_service.get_context(db, org.id)
        assert context.weights_source == "organization"

    def test_weights_body_uses_self_alias(self):
        body = EvaluatorWeightsBody.model_validate({"self": 40, "manager": 60, "peer": 0, "upward": 0})
        assert body.to_map() == {"self": 40, "manager": 60, "peer": 0, "upward": 0}

    def test_band_bounds_are_on_the_five_point_scale(self):
        with pytest.raises(ValidationError):
            LevelBand(level="x", label="X", min_score=0, max_score=6)


class TestCycleWeights:
    """주기 가중치 재정의 테스트."""

    async def test_cycle_override_wins_and_changes_the_score(self, db, org, employee, scored_cycle):
        weights = EvaluatorWeightsBody(**{"self": 0, "manager": 100, "peer": 0, "upward": 0})
        result = await rating_config_service.set_cycle_weights(
            db, scored_cycle.id, org.id, CycleWeightsUpdate(evaluator_weights=weights)
        )
        await db.commit()

        assert result["weights_source"] == "cycle"
        assert result["resolved_weights"]["manager"] == 100

        rating = (await rating_service.generate_rating(db, scored_cycle.id, employee.id, org.id))["rating"]
        assert rating.calculated_score == 3.0
        assert rating.calculated_level == "developing"

    async def test_clearing_override_falls_back(self, db, org, scored_cycle):
        weights = EvaluatorWeightsBody(**{"self": 0, "manager": 100, "peer": 0, "upward": 0})
        await rating_config_service.set_cycle_weights(db, scored_cycle.id, org.id, CycleWeightsUpdate(evaluator_weights=weights))
        cleared = await rating_config_service.set_cycle_weights(db, scored_cycle.id, org.id, CycleWeightsUpdate())
        assert cleared["evaluator_weights_override"] is None
        assert cleared["weights_source"] == "default"

    async def test_invalid_override_and_unknown_cycle(self, db, org, scored_cycle):
        with pytest.raises(BadRequestError):
            await rating_config_service.set_cycle_weights(
                db, scored_cycle.id, org.id,
                CycleWeightsUpdate(evaluator_weights=EvaluatorWeightsBody(**{"self": 60, "manager": 60, "peer": 0, "upward": 0})),
            )
        with pytest.raises(NotFoundError):
            await rating_config_service.set_cycle_weights(db, uuid.uuid4(), org.id, CycleWeightsUpdate())
