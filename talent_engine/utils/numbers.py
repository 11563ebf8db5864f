"""점수 반올림 및 평균 헬퍼.

Score rounding and averaging helpers shared by the scoring modules.
All persisted scores are rounded half-up to two decimals.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

CENT = Decimal("0.01")


def round2(value: float | Decimal) -> float:
    """소수점 둘째 자리 반올림 (Round half-up to 2 decimal places)."""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def mean(values: Iterable[float]) -> float | None:
    """평균 — 값이 없으면 None (Arithmetic mean, None for an empty input)."""
    items = list(values)
    if not items:
        return None
    return sum(items) / len(items)


def percent(part: int, whole: int) -> int:
    """정수 백분율 — 분모 0이면 0 (Rounded integer percentage, 0 when whole is 0)."""
    if whole <= 0:
        return 0
    return int(Decimal(part * 100 / whole).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
