"""성과 등급 분류 — 점수를 등급 구간으로 매핑.

Classifier — Maps a score onto a level band of the tenant's scale.

A band covers ``[min_score, next band's min_score)``; the top band is closed at
5.0. Scores outside the 0–5 domain clamp to the lowest or highest band, so
every score resolves to exactly one band. Custom scales must pass
validate_levels_config before they are saved.
"""

from decimal import Decimal
from typing import Any, Sequence

from talent_engine.models.rating import AdjustmentType

SCORE_MIN: float = 0.0
SCORE_MAX: float = 5.0

# 허용 간격 — 2.49 → 2.5 처럼 소수점 둘째 자리 경계 (Max allowed gap between consecutive bands)
MAX_BAND_GAP = Decimal("0.01")

# 기본 5단계 척도 (Built-in five-band scale)
DEFAULT_LEVELS: list[dict[str, Any]] = [
    {
        "level": "exceptional",
        "label": "Exceptional",
        "label_short": "EXC",
        "min_score": 4.5,
        "max_score": 5.0,
        "color": "#10B981",
        "description": "Consistently exceeds every expectation. A role model.",
        "distribution_target": 10,
    },
    {
        "level": "exceeds_expectations",
        "label": "Exceeds Expectations",
        "label_short": "EXE",
        "min_score": 4.0,
        "max_score": 4.49,
        "color": "#22D3EE",
        "description": "Frequently goes beyond what the role requires.",
        "distribution_target": 20,
    },
    {
        "level": "meets_expectations",
        "label": "Meets Expectations",
        "label_short": "MEE",
        "min_score": 3.5,
        "max_score": 3.99,
        "color": "#A78BFA",
        "description": "Solidly delivers what the role requires.",
        "distribution_target": 40,
    },
    {
        "level": "developing",
        "label": "Developing",
        "label_short": "DEV",
        "min_score": 2.5,
        "max_score": 3.49,
        "color": "#F59E0B",
        "description": "Still developing. Needs additional support.",
        "distribution_target": 20,
    },
    {
        "level": "needs_improvement",
        "label": "Needs Improvement",
        "label_short": "NIM",
        "min_score": 0.0,
        "max_score": 2.49,
        "color": "#EF4444",
        "description": "Requires an immediate improvement plan.",
        "distribution_target": 10,
    },
]

# 3단계 척도 (Built-in three-band scale)
THREE_LEVELS: list[dict[str, Any]] = [
    {
        "level": "exceeds",
        "label": "Exceeds Expectations",
        "label_short": "EXC",
        "min_score": 4.0,
        "max_score": 5.0,
        "color": "#10B981",
        "description": "Performance above what is expected.",
        "distribution_target": 20,
    },
    {
        "level": "meets",
        "label": "Meets Expectations",
        "label_short": "MEE",
        "min_score": 3.0,
        "max_score": 3.99,
        "color": "#22D3EE",
        "description": "Meets what the role expects.",
        "distribution_target": 60,
    },
    {
        "level": "below",
        "label": "Below Expectations",
        "label_short": "BEL",
        "min_score": 0.0,
        "max_score": 2.99,
        "color": "#EF4444",
        "description": "Does not reach the role's expectations.",
        "distribution_target": 20,
    },
]

# 척도 유형별 기본 구간 (Preset bands per scale type; "custom" has none)
SCALE_PRESETS: dict[str, list[dict[str, Any]]] = {
    "five_level": DEFAULT_LEVELS,
    "three_level": THREE_LEVELS,
}


def classify(score: float, levels: Sequence[dict[str, Any]] | None = None) -> dict[str, Any]:
    """점수에 해당하는 등급 구간을 반환합니다.

    Return a copy of the band for the given score: the band with the highest
    min_score not above the score, or the lowest band for scores below every
    band.

    Args:
        score: 0–5 점수 (Score to classify)
        levels: 등급 구간 목록, None이면 기본 5단계 (Bands; default five-band scale)

    Returns:
        dict: {level, label, label_short, min_score, max_score, color, description, ...}
    """
    bands = sorted(levels or DEFAULT_LEVELS, key=lambda band: band["min_score"], reverse=True)
    for band in bands:
        if score >= band["min_score"]:
            return dict(band)
    return dict(bands[-1])


def calculate_adjustment_type(calculated_score: float, final_score: float) -> str:
    """캘리브레이션 조정 유형 (no_change when |Δ| < 0.01, else upgrade/downgrade)."""
    if abs(final_score - calculated_score) < 0.01:
        return AdjustmentType.NO_CHANGE.value
    if final_score > calculated_score:
        return AdjustmentType.UPGRADE.value
    return AdjustmentType.DOWNGRADE.value


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


def validate_levels_config(levels: Sequence[dict[str, Any]]) -> list[str]:
    """사용자 정의 척도 검증 — 오류 메시지 목록 반환 (빈 목록이면 유효).

    Validate a custom scale. Returns a list of error messages; an empty list
    means the scale is valid.

    Rules:
        - 3–7 bands with unique level ids
        - every band has min_score <= max_score
        - lowest band starts at 0, highest band reaches 5
        - consecutive bands neither overlap nor leave a gap wider than 0.01
        - distribution targets, when any is given, sum to 100
    """
    errors: list[str] = []

    if len(levels) < 3:
        errors.append("At least 3 levels are required")
    if len(levels) > 7:
        errors.append("No more than 7 levels are allowed")
    if not levels:
        return errors

    ids = [band["level"] for band in levels]
    if len(set(ids)) != len(ids):
        errors.append("Level ids must be unique")

    for band in levels:
        if band["min_score"] > band["max_score"]:
            errors.append(f"Level '{band['level']}' has min_score greater than max_score")

    ordered = sorted(levels, key=lambda band: band["min_score"])
    if _dec(ordered[0]["min_score"]) != _dec(SCORE_MIN):
        errors.append("The lowest level must start at 0")
    if max(_dec(band["max_score"]) for band in levels) < _dec(SCORE_MAX):
        errors.append("The highest level must reach 5")

    for lower, upper in zip(ordered, ordered[1:]):
        gap = _dec(upper["min_score"]) - _dec(lower["max_score"])
        if gap <= 0:
            errors.append(f"Levels '{lower['level']}' and '{upper['level']}' overlap")
        elif gap > MAX_BAND_GAP:
            errors.append(f"Gap between levels '{lower['level']}' and '{upper['level']}' is wider than 0.01")

    if any(band.get("distribution_target") is not None for band in levels):
        total = sum(_dec(band.get("distribution_target") or 0) for band in levels)
        if abs(total - 100) > MAX_BAND_GAP:
            errors.append(f"Distribution targets must sum to 100 (got {total})")

    return errors
