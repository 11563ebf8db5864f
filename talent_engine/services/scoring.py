"""가중 점수 계산 — 평가자 유형별 점수를 하나의 성과 점수로 결합.

Weighted Scorer — Combines per-rater-type component scores into one
performance score. Weights are renormalized over the rater types that
actually have a score, so a missing rater type never drags the result
toward zero.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from talent_engine.models.assignment import RaterType
from talent_engine.utils.numbers import mean, round2

# 가중치 키 순서 (Weight keys, in display order)
WEIGHT_KEYS: tuple[str, ...] = ("self", "manager", "peer", "upward")

# 평가자 유형 → 가중치 키 (Rater type tag to weight key)
RATER_TYPE_KEYS: dict[str, str] = {
    RaterType.SELF.value: "self",
    RaterType.MANAGER_TO_EMPLOYEE.value: "manager",
    RaterType.PEER.value: "peer",
    RaterType.EMPLOYEE_TO_MANAGER.value: "upward",
}

# 기본 가중치 — 모든 평가자 유형 동일 (Built-in default: equal weights)
DEFAULT_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {"self": 25.0, "manager": 25.0, "peer": 25.0, "upward": 25.0}
)


def complete_weights(raw: Mapping[str, Any]) -> Mapping[str, float]:
    """네 가지 키를 모두 갖춘 읽기 전용 가중치 맵 — 누락 키는 0.

    Return a read-only weight map covering every rater type.
    Missing or null entries become 0 (no influence), never an error.
    """
    return MappingProxyType({key: float(raw.get(key) or 0) for key in WEIGHT_KEYS})


@dataclass(frozen=True)
class ComponentScores:
    """평가자 유형별 점수 (Per-rater-type averages, None when the type has no data)."""

    self_score: float | None = None
    manager_score: float | None = None
    peer_avg_score: float | None = None
    upward_avg_score: float | None = None

    def by_weight_key(self) -> dict[str, float | None]:
        return {
            "self": self.self_score,
            "manager": self.manager_score,
            "peer": self.peer_avg_score,
            "upward": self.upward_avg_score,
        }

    def present(self) -> list[float]:
        return [score for score in self.by_weight_key().values() if score is not None]


def calculate_weighted_score(scores: ComponentScores, weights: Mapping[str, float]) -> float:
    """재정규화된 가중 평균 점수를 계산합니다.

    Σ wᵢ·sᵢ / Σ wᵢ over the rater types whose score is present, rounded
    half-up to two decimals. Returns 0 when no rater type has a score.
    When every present type carries weight 0 the plain mean of the present
    scores is used instead, so one present score always reproduces itself.

    Args:
        scores: 평가자 유형별 점수 (Component scores)
        weights: 완전한 가중치 맵 (Complete weight map from complete_weights)

    Returns:
        float: 0–5 성과 점수 (Performance score)
    """
    weighted_sum: float = 0.0
    total_weight: float = 0.0
    present: list[float] = []

    for key, score in scores.by_weight_key().items():
        if score is None:
            continue
        present.append(score)
        weight = weights.get(key, 0.0)
        weighted_sum += score * weight
        total_weight += weight

    if not present:
        return 0.0
    if total_weight <= 0:
        return round2(mean(present))
    return round2(weighted_sum / total_weight)
