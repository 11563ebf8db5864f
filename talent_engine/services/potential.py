"""잠재력 평가 — AAE(Aspiration, Ability, Engagement) 요인 결합.

Potential Assessor — Combines the three AAE factors into one potential score
on the 1–5 performance scale so both nine-box axes are directly comparable.

score = 1 + (mean(factors) − 1) × 2, rounded to two decimals:
(1,1,1) → 1.0, (2,2,2) → 3.0, (3,3,3) → 5.0. The mapping is increasing in
every factor and depends on nothing but the stored factor values.
"""

from dataclasses import dataclass

from talent_engine.utils.exceptions import BadRequestError
from talent_engine.utils.numbers import round2

FACTOR_NAMES: tuple[str, ...] = ("aspiration", "ability", "engagement")
FACTOR_VALUES: tuple[int, ...] = (1, 2, 3)
POTENTIAL_MIN: float = 1.0
POTENTIAL_MAX: float = 5.0


@dataclass(frozen=True)
class PotentialAssessment:
    """검증된 잠재력 입력 결과 (Validated potential: score plus the factors it came from)."""

    score: float
    aspiration: int | None = None
    ability: int | None = None
    engagement: int | None = None


def calculate_potential_score(aspiration: int, ability: int, engagement: int) -> float:
    """세 요인(각 1–3)을 1–5 잠재력 점수로 변환합니다 (Map three 1–3 factors onto 1–5)."""
    factor_mean = (aspiration + ability + engagement) / 3
    return round2(POTENTIAL_MIN + (factor_mean - 1) * 2)


def assess_potential(
    potential_score: float | None = None,
    aspiration: int | None = None,
    ability: int | None = None,
    engagement: int | None = None,
) -> PotentialAssessment:
    """잠재력 입력을 검증하고 점수를 결정합니다.

    Validate potential input and resolve the score. When all three factors are
    given they take precedence and the score is computed from them; otherwise a
    direct score in [1, 5] is required.

    Raises:
        BadRequestError: 직접 점수와 세 요인이 모두 없거나 범위를 벗어난 경우
                         (Neither a direct score nor all three factors, or out of range)
    """
    factors = (aspiration, ability, engagement)
    has_all_factors = all(value is not None for value in factors)

    if has_all_factors:
        for name, value in zip(FACTOR_NAMES, factors):
            if value not in FACTOR_VALUES:
                raise BadRequestError(
                    f"각 요인은 1, 2, 3 중 하나여야 합니다 (Factor '{name}' must be 1, 2 or 3)"
                )
        return PotentialAssessment(
            score=calculate_potential_score(aspiration, ability, engagement),
            aspiration=aspiration,
            ability=ability,
            engagement=engagement,
        )

    if potential_score is None:
        raise BadRequestError(
            "잠재력 점수 또는 세 요인이 필요합니다 "
            "(potential_score or all three factors aspiration, ability, engagement are required)"
        )
    if not POTENTIAL_MIN <= potential_score <= POTENTIAL_MAX:
        raise BadRequestError("잠재력 점수는 1–5 사이여야 합니다 (potential_score must be between 1 and 5)")
    return PotentialAssessment(score=round2(potential_score))
