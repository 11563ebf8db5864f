"""등급 목록 서비스 — 주기 상태에 따른 하이브리드 조회.

Rating Listing Service — Hybrid Read Dispatcher.

    ACTIVE cycle      → live path: the universe of evaluatees with at least one
                        completed assignment, merged with any persisted ratings;
                        missing scores are computed on the fly and never stored.
    any other status  → persisted path: SQL filter/sort/paginate over
                        performance_ratings with separate COUNT queries.

Filters mean the same thing on both paths. Stats never depend on the page
or on the status filters.
"""

import math
from typing import Any, Callable, Mapping, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from talent_engine.models.cycle import CycleStatus
from talent_engine.models.organization import Employee
from talent_engine.repositories.assignment_repository import assignment_repository
from talent_engine.repositories.rating_repository import rating_repository
from talent_engine.schemas.rating import RatingListParams
from talent_engine.services.classification import classify
from talent_engine.services.nine_box import position_for_scores
from talent_engine.services.rating_config_service import RatingContext, rating_config_service
from talent_engine.services.rating_service import rating_service
from talent_engine.services.results_service import results_service
from talent_engine.services.scoring import calculate_weighted_score
from talent_engine.utils.numbers import percent

# 저장 값을 우선할 때 다시 계산하는 산출 필드 (Machine fields a live score overlays)
LIVE_SCORE_FIELDS: tuple[str, ...] = (
    "calculated_score",
    "calculated_level",
    "self_score",
    "manager_score",
    "peer_avg_score",
    "upward_avg_score",
    "evaluation_completeness",
    "total_evaluations",
    "completed_evaluations",
)


def has_usable_score(row: Mapping[str, Any] | None) -> bool:
    """저장된 행에 사용 가능한 점수가 있는지 (A persisted row counts only with a score above 0)."""
    return row is not None and (row.get("calculated_score") or 0) > 0


def employees_needing_live_score(
    universe: Sequence[Mapping[str, Any]],
    persisted: Mapping[str, Mapping[str, Any]],
) -> list[str]:
    """실시간 계산이 필요한 직원 ID 목록 (Universe members without a usable persisted score)."""
    return [person["employee_id"] for person in universe if not has_usable_score(persisted.get(person["employee_id"]))]


def _live_skeleton(person: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": None,
        "cycle_id": person.get("cycle_id"),
        "employee_id": person["employee_id"],
        "employee_name": person.get("employee_name"),
        "employee_position": person.get("employee_position"),
        "department_id": person.get("department_id"),
        "calculated_score": 0.0,
        "calculated_level": None,
        "final_score": None,
        "final_level": None,
        "self_score": None,
        "manager_score": None,
        "peer_avg_score": None,
        "upward_avg_score": None,
        "evaluation_completeness": 0.0,
        "total_evaluations": 0,
        "completed_evaluations": 0,
        "potential_score": None,
        "potential_level": None,
        "potential_aspiration": None,
        "potential_ability": None,
        "potential_engagement": None,
        "potential_rated_by": None,
        "potential_rated_at": None,
        "potential_notes": None,
        "nine_box_position": None,
        "calibrated": False,
        "calibrated_by": None,
        "calibrated_at": None,
        "calibration_session_id": None,
        "adjustment_reason": None,
        "adjustment_type": None,
        "is_persisted": False,
    }


def merge_live_universe(
    universe: Sequence[Mapping[str, Any]],
    persisted: Mapping[str, Mapping[str, Any]],
    live: Mapping[str, Mapping[str, Any]],
    levels: Sequence[Mapping[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    """실시간 모집단과 저장된 등급을 직원 ID 기준으로 병합합니다 (순수 함수).

    Merge the live universe with persisted ratings, keyed by employee id.
    A persisted row with a usable score wins as-is. Otherwise the live score
    fields overlay it (or a blank row when nothing is persisted), so
    calibration and potential data already stored is still surfaced.
    Every universe member yields exactly one row, in universe order.

    Args:
        universe: 모집단 [{employee_id, employee_name, employee_position, department_id}]
        persisted: 직원 ID → 저장된 등급 행 (Persisted rows by employee id)
        live: 직원 ID → 실시간 산출 필드 (Live score fields by employee id)
        levels: 분류용 등급 구간 (Bands used to classify the effective score)

    Returns:
        list[dict]: 병합된 행 (Merged rows)
    """
    merged: list[dict[str, Any]] = []
    for person in universe:
        employee_id = person["employee_id"]
        stored = persisted.get(employee_id)
        if has_usable_score(stored):
            merged.append(dict(stored))
            continue

        row = dict(stored) if stored is not None else _live_skeleton(person)
        for field in LIVE_SCORE_FIELDS:
            if field in live.get(employee_id, {}):
                row[field] = live[employee_id][field]

        effective = row["final_score"] if row.get("final_score") is not None else row["calculated_score"]
        classification = classify(effective, levels)
        row["calculated_level"] = row.get("calculated_level") or classification["level"]
        row["effective_score"] = effective
        row["effective_level"] = row["final_level"] or row["calculated_level"]
        row["classification"] = classification
        row["nine_box_position"] = position_for_scores(effective, row.get("potential_score"))
        merged.append(row)
    return merged


def compute_stats(rows: Sequence[Mapping[str, Any]]) -> dict[str, int]:
    total = len(rows)
    evaluated = sum(1 for row in rows if (row.get("calculated_score") or 0) > 0)
    potential_assigned = sum(
        1 for row in rows
        if row.get("potential_score") is not None and (row.get("calculated_score") or 0) > 0
    )
    return build_stats(total, evaluated, potential_assigned)


def build_stats(total: int, evaluated: int, potential_assigned: int) -> dict[str, int]:
    return {
        "total": total,
        "evaluated": evaluated,
        "not_evaluated": total - evaluated,
        "potential_assigned": potential_assigned,
        "potential_pending": evaluated - potential_assigned,
        "evaluation_progress": percent(evaluated, total),
        "potential_progress": percent(potential_assigned, evaluated),
    }


def filter_rows(rows: Sequence[Mapping[str, Any]], params: RatingListParams) -> list[Mapping[str, Any]]:
    """저장 경로의 SQL 조건과 같은 의미로 행을 필터링합니다 (Same semantics as the persisted-path WHERE)."""
    predicates: list[Callable[[Mapping[str, Any]], bool]] = []

    def _evaluated(row: Mapping[str, Any]) -> bool:
        return (row.get("calculated_score") or 0) > 0

    if params.evaluation_status == "evaluated":
        predicates.append(_evaluated)
    elif params.evaluation_status == "not_evaluated":
        predicates.append(lambda row: not _evaluated(row))

    if params.potential_status == "assigned":
        predicates.append(lambda row: _evaluated(row) and row.get("potential_score") is not None)
    elif params.potential_status == "pending":
        predicates.append(lambda row: _evaluated(row) and row.get("potential_score") is None)

    if params.search and params.search.strip():
        needle = params.search.strip().casefold()
        predicates.append(lambda row: needle in (row.get("employee_name") or "").casefold())
    if params.filter_level:
        predicates.append(lambda row: row.get("effective_level") == params.filter_level)
    if params.filter_nine_box:
        predicates.append(lambda row: row.get("nine_box_position") == params.filter_nine_box)
    if params.filter_calibrated is not None:
        predicates.append(lambda row: bool(row.get("calibrated")) == params.filter_calibrated)

    return [row for row in rows if all(predicate(row) for predicate in predicates)]


def sort_rows(rows: Sequence[Mapping[str, Any]], sort_by: str, sort_order: str) -> list[Mapping[str, Any]]:
    # 동점은 이름 순으로 고정 (Ties always fall back to name order)
    ordered = sorted(rows, key=lambda row: ((row.get("employee_name") or "").casefold(), row["employee_id"]))
    if sort_by == "score":
        key: Callable[[Mapping[str, Any]], Any] = lambda row: row.get("effective_score") or 0
    elif sort_by == "level":
        key = lambda row: row.get("effective_level") or ""
    else:
        return list(reversed(ordered)) if sort_order == "desc" else ordered
    return sorted(ordered, key=key, reverse=sort_order == "desc")


def _pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit) if limit else 0}


class RatingListingService:
    """등급 목록 서비스.

    Hybrid listing of a cycle's ratings, dispatched on the cycle status.
    """

    async def list_ratings_for_cycle(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        params: RatingListParams,
    ) -> dict:
        """주기 등급 목록 — {data, pagination, stats, source}.

        Raises:
            NotFoundError: 주기가 없는 경우 (Unknown cycle)
        """
        cycle = await results_service.get_cycle(db, cycle_id, organization_id)
        context = await rating_config_service.get_context(db, organization_id, cycle)
        if cycle.status == CycleStatus.ACTIVE.value:
            return await self._list_live(db, cycle, organization_id, params, context)
        return await self._list_persisted(db, cycle.id, organization_id, params, context)

    async def _list_persisted(
        self,
        db: AsyncSession,
        cycle_id: UUID,
        organization_id: UUID,
        params: RatingListParams,
        context: RatingContext,
    ) -> dict:
        total, evaluated, potential_assigned = await rating_repository.count_stats(
            db, cycle_id, organization_id, params.department_ids
        )
        rows, filtered_total = await rating_repository.list_filtered(
            db,
            cycle_id,
            organization_id,
            page=params.page,
            limit=params.limit,
            sort_by=params.sort_by,
            sort_order=params.sort_order,
            department_ids=params.department_ids,
            evaluation_status=params.evaluation_status,
            potential_status=params.potential_status,
            search=params.search,
            filter_level=params.filter_level,
            filter_nine_box=params.filter_nine_box,
            filter_calibrated=params.filter_calibrated,
        )
        return {
            "data": [rating_service.build_rating_response(rating, employee, context) for rating, employee in rows],
            "pagination": _pagination(params.page, params.limit, filtered_total),
            "stats": build_stats(total, evaluated, potential_assigned),
            "source": "persisted",
        }

    async def _list_live(
        self,
        db: AsyncSession,
        cycle: Any,
        organization_id: UUID,
        params: RatingListParams,
        context: RatingContext,
    ) -> dict:
        employees: Sequence[Employee] = await assignment_repository.list_completed_evaluatees(
            db, cycle.id, organization_id, params.department_ids
        )
        universe = [
            {
                "cycle_id": str(cycle.id),
                "employee_id": str(employee.id),
                "employee_name": employee.full_name,
                "employee_position": employee.position,
                "department_id": str(employee.department_id) if employee.department_id else None,
            }
            for employee in employees
        ]
        employees_by_id = {str(employee.id): employee for employee in employees}

        stored = await rating_repository.get_by_cycle_and_employees(
            db, cycle.id, organization_id, [employee.id for employee in employees]
        )
        persisted = {
            str(employee_id): rating_service.build_rating_response(rating, employees_by_id[str(employee_id)], context)
            for employee_id, rating in stored.items()
        }

        # 전체 모집단을 매 호출마다 집계 (Cost is O(universe) per call, not per page)
        missing = employees_needing_live_score(universe, persisted)
        aggregated = await results_service.aggregate_many(db, cycle, [UUID(employee_id) for employee_id in missing])
        live: dict[str, dict[str, Any]] = {}
        for employee_id, results in aggregated.items():
            score = calculate_weighted_score(results.scores, context.weights)
            live[str(employee_id)] = {
                "calculated_score": score,
                "calculated_level": classify(score, context.levels)["level"],
                "self_score": results.scores.self_score,
                "manager_score": results.scores.manager_score,
                "peer_avg_score": results.scores.peer_avg_score,
                "upward_avg_score": results.scores.upward_avg_score,
                "evaluation_completeness": results.evaluation_completeness,
                "total_evaluations": results.total_evaluations,
                "completed_evaluations": results.completed_evaluations,
            }

        merged = merge_live_universe(universe, persisted, live, context.levels)
        filtered = sort_rows(filter_rows(merged, params), params.sort_by, params.sort_order)
        start = (params.page - 1) * params.limit
        return {
            "data": [dict(row) for row in filtered[start:start + params.limit]],
            "pagination": _pagination(params.page, params.limit, len(filtered)),
            "stats": compute_stats(merged),
            "source": "live",
        }


rating_listing_service: RatingListingService = RatingListingService()
