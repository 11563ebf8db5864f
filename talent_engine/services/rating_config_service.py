"""등급 설정 서비스 — 가중치/척도 해석 및 저장.

Rating Config Service — Weight Resolver.
Resolves evaluator weights through an ordered list of optional sources
(cycle override → tenant config → built-in default), first match wins, and
freezes the result together with the level scale into a RatingContext that
one operation passes down instead of re-querying.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.cycle import PerformanceCycle
from talent_engine.models.rating import PerformanceRatingConfig
from talent_engine.repositories.cycle_repository import cycle_repository
from talent_engine.repositories.rating_config_repository import rating_config_repository
from talent_engine.schemas.rating_config import CycleWeightsUpdate, RatingConfigUpdate
from talent_engine.services.classification import DEFAULT_LEVELS, SCALE_PRESETS, validate_levels_config
from talent_engine.services.scoring import DEFAULT_WEIGHTS, WEIGHT_KEYS, complete_weights
from talent_engine.utils.exceptions import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

WEIGHT_SUM: float = 100.0
WEIGHT_TOLERANCE: float = 0.01


@dataclass(frozen=True)
class RatingContext:
    """한 작업 동안 고정되는 등급 계산 설정.

    Immutable rating configuration resolved once per operation.

    Attributes:
        weights: 완전한 가중치 맵 (Complete read-only weight map)
        weights_source: 가중치 출처 ("cycle", "organization", "default")
        levels: 등급 구간 (Frozen level bands)
        scale_type: 척도 유형 (Scale type)
    """

    weights: Mapping[str, float]
    weights_source: str
    levels: tuple[Mapping[str, Any], ...]
    scale_type: str


def resolve_weights(
    sources: Sequence[tuple[str, Mapping[str, Any] | None]],
) -> tuple[str, Mapping[str, float]]:
    """순서대로 첫 번째 비어 있지 않은 가중치 출처를 선택합니다.

    Return (source name, complete weights) for the first present, non-empty
    source, or the built-in default when none applies.
    """
    for name, raw in sources:
        if raw:
            return name, complete_weights(raw)
    return "default", DEFAULT_WEIGHTS


def freeze_levels(levels: Sequence[Mapping[str, Any]]) -> tuple[Mapping[str, Any], ...]:
    return tuple(MappingProxyType(dict(band)) for band in levels)


def build_rating_context(
    config: PerformanceRatingConfig | None,
    cycle: PerformanceCycle | None = None,
) -> RatingContext:
    """조직 설정과 주기 재정의로 RatingContext를 생성합니다 (Build the context from loaded rows)."""
    source, weights = resolve_weights([
        ("cycle", cycle.evaluator_weights_override if cycle is not None else None),
        ("organization", config.evaluator_weights if config is not None else None),
    ])

    scale_type = config.scale_type if config is not None else "five_level"
    levels = (config.levels if config is not None else None) or SCALE_PRESETS.get(scale_type) or DEFAULT_LEVELS
    return RatingContext(
        weights=weights,
        weights_source=source,
        levels=freeze_levels(levels),
        scale_type=scale_type,
    )


def validate_evaluator_weights(weights: Mapping[str, float]) -> list[str]:
    """평가자 가중치 검증 — 오류 메시지 목록 (Non-negative, each <= 100, sum 100 ± 0.01)."""
    errors: list[str] = []
    values = [float(weights.get(key) or 0) for key in WEIGHT_KEYS]
    total = sum(values)
    if abs(total - WEIGHT_SUM) > WEIGHT_TOLERANCE:
        errors.append(f"Weights must sum to 100 (got {total:g})")
    if any(value < 0 for value in values):
        errors.append("Weights cannot be negative")
    if any(value > WEIGHT_SUM for value in values):
        errors.append("No weight can exceed 100")
    return errors


class RatingConfigService:
    """등급 설정 서비스.

    Rating configuration service: tenant scale/weights CRUD, cycle weight
    overrides and RatingContext resolution.
    """

    async def get_context(
        self,
        db: AsyncSession,
        organization_id: UUID,
        cycle: PerformanceCycle | None = None,
    ) -> RatingContext:
        config = await rating_config_repository.get_by_org(db, organization_id)
        return build_rating_context(config, cycle)

    async def get_config(self, db: AsyncSession, organization_id: UUID) -> dict:
        config = await rating_config_repository.get_by_org(db, organization_id)
        context = build_rating_context(config)
        return {
            "scale_type": context.scale_type,
            "levels": [dict(band) for band in context.levels],
            "evaluator_weights": dict(context.weights),
            "is_default": config is None,
        }

    async def save_config(
        self,
        db: AsyncSession,
        organization_id: UUID,
        data: RatingConfigUpdate,
    ) -> dict:
        """조직 등급 설정을 검증 후 저장합니다.

        Validate and save the tenant configuration. Levels are validated as a
        whole scale; weights must sum to 100.

        Raises:
            BadRequestError: 척도 또는 가중치가 유효하지 않은 경우 (Invalid scale or weights)
        """
        config = await rating_config_repository.get_by_org(db, organization_id)
        scale_type = data.scale_type or (config.scale_type if config is not None else "five_level")

        levels: list[dict] | None = None
        if data.levels is not None:
            levels = [band.model_dump() for band in data.levels]
        elif data.scale_type is not None:
            if scale_type == "custom":
                raise BadRequestError("사용자 정의 척도에는 구간이 필요합니다 (Custom scale requires levels)")
            levels = [dict(band) for band in SCALE_PRESETS[scale_type]]

        if levels is not None:
            errors = validate_levels_config(levels)
            if errors:
                raise BadRequestError("; ".join(errors))

        weights: dict[str, float] | None = None
        if data.evaluator_weights is not None:
            weights = data.evaluator_weights.to_map()
            errors = validate_evaluator_weights(weights)
            if errors:
                raise BadRequestError("; ".join(errors))

        update_data: dict[str, Any] = {"scale_type": scale_type}
        if levels is not None:
            update_data["levels"] = levels
        if weights is not None:
            update_data["evaluator_weights"] = weights

        if config is None:
            await rating_config_repository.create(db, {"organization_id": organization_id, **update_data})
        else:
            await rating_config_repository.update(db, config, update_data)

        logger.info("Saved rating config for organization %s (scale=%s)", organization_id, scale_type)
        return await self.get_config(db, organization_id)

    async def set_cycle_weights(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        data: CycleWeightsUpdate,
    ) -> dict:
        """주기 가중치 재정의 설정/해제 (Set or clear a cycle's weight override)."""
        cycle = await cycle_repository.get_by_id(db, cycle_id, organization_id)
        if cycle is None:
            raise NotFoundError("평가 주기를 찾을 수 없습니다 (Cycle not found)")

        override: dict[str, float] | None = None
        if data.evaluator_weights is not None:
            override = data.evaluator_weights.to_map()
            errors = validate_evaluator_weights(override)
            if errors:
                raise BadRequestError("; ".join(errors))

        await cycle_repository.update(db, cycle, {"evaluator_weights_override": override})
        context = await self.get_context(db, organization_id, cycle)
        return {
            "cycle_id": str(cycle.id),
            "evaluator_weights_override": override,
            "resolved_weights": dict(context.weights),
            "weights_source": context.weights_source,
        }


rating_config_service: RatingConfigService = RatingConfigService()
