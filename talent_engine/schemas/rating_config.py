"""등급 설정 Pydantic 요청/응답 스키마.

Rating configuration Pydantic request/response schemas.
Covers the per-tenant level scale and evaluator weights, and the
per-cycle weight override.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class LevelBand(BaseModel):
    """등급 구간 스키마.

    One score band of a level scale.

    Attributes:
        level: 등급 식별자 (Stable level id, e.g. "exceeds_expectations")
        label: 표시 이름 (Display label)
        label_short: 약칭 (Short label)
        min_score / max_score: 구간 하한/상한 (Band bounds on the 0–5 scale)
        color: 표시 색상 (Display color, hex)
        description: 설명 (Description)
        distribution_target: 목표 분포 % (Target share of people, optional)
    """

    level: str = Field(..., min_length=1, max_length=50)
    label: str = Field(..., min_length=1)
    label_short: str = ""
    min_score: float = Field(..., ge=0, le=5)
    max_score: float = Field(..., ge=0, le=5)
    color: str = "#64748B"
    description: str = ""
    distribution_target: float | None = Field(None, ge=0, le=100)


class EvaluatorWeightsBody(BaseModel):
    """평가자 유형별 가중치 스키마 — 합계 100.

    Evaluator weights per rater type. ``self`` is exposed under its JSON name
    and stored as ``self_weight`` on the model.
    """

    model_config = ConfigDict(populate_by_name=True)

    self_weight: float = Field(25, alias="self")  # 자기평가 가중치 (Self weight)
    manager: float = 25  # 상사 평가 가중치 (Manager weight)
    peer: float = 25  # 동료 평가 가중치 (Peer weight)
    upward: float = 25  # 상향 평가 가중치 (Direct-report weight)

    def to_map(self) -> dict[str, float]:
        return {"self": self.self_weight, "manager": self.manager, "peer": self.peer, "upward": self.upward}


class RatingConfigUpdate(BaseModel):
    """조직 등급 설정 수정 요청 (부분 업데이트).

    Tenant rating configuration update (partial). Choosing a preset scale
    without levels loads the preset bands; a custom scale requires levels.
    """

    scale_type: Literal["three_level", "five_level", "custom"] | None = None
    levels: list[LevelBand] | None = None
    evaluator_weights: EvaluatorWeightsBody | None = None


class CycleWeightsUpdate(BaseModel):
    """주기 가중치 재정의 요청 — null이면 재정의 해제 (null clears the override)."""

    evaluator_weights: EvaluatorWeightsBody | None = None


class RatingConfigResponse(BaseModel):
    """유효 등급 설정 응답.

    Effective rating configuration of a tenant, with the source each part
    was resolved from.
    """

    scale_type: str
    levels: list[dict]
    evaluator_weights: dict[str, float]
    is_default: bool  # 조직 설정이 없으면 True (True when the tenant has no saved config)
