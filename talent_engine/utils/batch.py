"""청크 단위 동시 처리 유틸리티 — settle-all 배치 실행.

Chunked concurrent execution utility with settle-all semantics.
Items are processed in fixed-size groups; inside a group every worker runs
concurrently and the group is gathered only after all of its members settle.
One item's exception never aborts its group or the batch.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Outcome(Generic[T, R]):
    """단일 항목 처리 결과 (Result of one item: either ``value`` or ``error``)."""

    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """고정 크기 청크로 분할 (Split a sequence into fixed-size chunks)."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [items[start:start + size] for start in range(0, len(items), size)]


async def settle_in_chunks(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    chunk_size: int,
) -> list[Outcome[T, R]]:
    """항목을 청크 단위로 동시 실행하고 모든 결과를 수집합니다.

    Run ``worker`` over ``items`` in bounded concurrent chunks and collect one
    Outcome per item, in input order. Ordinary exceptions are captured;
    cancellation and interpreter-level exceptions propagate.

    Args:
        items: 처리 대상 목록 (Items to process)
        worker: 항목 하나를 처리하는 코루틴 함수 (Coroutine function for one item)
        chunk_size: 동시 실행 최대 개수 (Maximum concurrency per chunk)

    Returns:
        list[Outcome]: 항목별 성공/실패 결과 (Per-item success/failure outcomes)
    """
    outcomes: list[Outcome[T, R]] = []
    for chunk in chunked(items, chunk_size):
        results = await asyncio.gather(*(worker(item) for item in chunk), return_exceptions=True)
        for item, result in zip(chunk, results):
            if isinstance(result, Exception):
                outcomes.append(Outcome(item=item, error=result))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(Outcome(item=item, value=result))
    return outcomes
