"""9-box 위치 계산 — (성과, 잠재력) 구간 쌍을 9개 위치로 매핑.

Grid Positioner — Buckets performance and potential scores into
low/medium/high and looks the pair up in the fixed 3×3 table.
"""

from enum import Enum

HIGH_THRESHOLD: float = 4.0
MEDIUM_THRESHOLD: float = 3.0


class Bucket(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NineBoxPosition(str, Enum):
    """9-box 위치 (Nine named grid positions)."""

    STAR = "star"
    GROWTH_POTENTIAL = "growth_potential"
    POTENTIAL_GEM = "potential_gem"
    HIGH_PERFORMER = "high_performer"
    CORE_PLAYER = "core_player"
    INCONSISTENT = "inconsistent"
    TRUSTED_PROFESSIONAL = "trusted_professional"
    AVERAGE_PERFORMER = "average_performer"
    UNDERPERFORMER = "underperformer"


# (성과 구간, 잠재력 구간) → 위치 — (performance bucket, potential bucket) to position
GRID: dict[tuple[Bucket, Bucket], NineBoxPosition] = {
    (Bucket.HIGH, Bucket.HIGH): NineBoxPosition.STAR,
    (Bucket.MEDIUM, Bucket.HIGH): NineBoxPosition.GROWTH_POTENTIAL,
    (Bucket.LOW, Bucket.HIGH): NineBoxPosition.POTENTIAL_GEM,
    (Bucket.HIGH, Bucket.MEDIUM): NineBoxPosition.HIGH_PERFORMER,
    (Bucket.MEDIUM, Bucket.MEDIUM): NineBoxPosition.CORE_PLAYER,
    (Bucket.LOW, Bucket.MEDIUM): NineBoxPosition.INCONSISTENT,
    (Bucket.HIGH, Bucket.LOW): NineBoxPosition.TRUSTED_PROFESSIONAL,
    (Bucket.MEDIUM, Bucket.LOW): NineBoxPosition.AVERAGE_PERFORMER,
    (Bucket.LOW, Bucket.LOW): NineBoxPosition.UNDERPERFORMER,
}


def score_to_bucket(score: float) -> Bucket:
    if score >= HIGH_THRESHOLD:
        return Bucket.HIGH
    if score >= MEDIUM_THRESHOLD:
        return Bucket.MEDIUM
    return Bucket.LOW


def position_for_buckets(performance: Bucket, potential: Bucket) -> NineBoxPosition:
    return GRID[(performance, potential)]


def calculate_nine_box_position(performance_score: float, potential_score: float) -> str:
    """성과/잠재력 점수로 9-box 위치를 계산합니다 (Position for a score pair)."""
    return position_for_buckets(score_to_bucket(performance_score), score_to_bucket(potential_score)).value


def position_for_scores(effective_score: float, potential_score: float | None) -> str | None:
    """잠재력이 없으면 위치 없음 (No position until a potential score exists)."""
    if potential_score is None:
        return None
    return calculate_nine_box_position(effective_score, potential_score)
