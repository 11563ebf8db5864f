"""관리자 API 테스트 — 인증, 등급 생성, 목록, 캘리브레이션, 세션.

Admin API tests — Token handling, rating generation, the hybrid listing,
calibration, potential, read models and calibration sessions over HTTP.
"""

import logging
import uuid

import pytest
from httpx import AsyncClient

from talent_engine.middleware.axiom_logging import _masked, _targets_of
from talent_engine.models.assignment import RaterType
from talent_engine.models.cycle import CycleStatus
from talent_engine.models.organization import Organization
from talent_engine.utils.jwt import create_access_token
from tests.conftest import add_assignment, auth_header, create_cycle, create_employee, make_token

BASE = "/api/v1/admin"
REASON = "strong Q4 recovery"


@pytest.fixture
async def generated(client: AsyncClient, admin_token, scored_cycle, employee) -> dict:
    """API로 생성된 3.5 등급 (A 3.5 rating generated over HTTP)."""
    res = await client.post(
        f"{BASE}/cycles/{scored_cycle.id}/ratings/{employee.id}/generate", headers=auth_header(admin_token)
    )
    assert res.status_code == 200
    return res.json()


class TestAuth:
    """신원 토큰 테스트."""

    async def test_health_check(self, client: AsyncClient):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}

    async def test_missing_token(self, client: AsyncClient):
        """토큰 없이 요청 시 401."""
        res = await client.get(f"{BASE}/rating-config")
        assert res.status_code == 401

    async def test_invalid_token(self, client: AsyncClient):
        res = await client.get(f"{BASE}/rating-config", headers=auth_header("not-a-jwt"))
        assert res.status_code == 401

    async def test_token_without_tenant(self, client: AsyncClient):
        """org 클레임이 없으면 401."""
        token = create_access_token({"sub": "hr@test.com"})
        res = await client.get(f"{BASE}/rating-config", headers=auth_header(token))
        assert res.status_code == 401


class TestRatingConfigAPI:
    """등급 설정 API 테스트."""

    async def test_get_default_config(self, client: AsyncClient, admin_token):
        res = await client.get(f"{BASE}/rating-config", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert res.json()["is_default"] is True

    async def test_save_three_level_scale(self, client: AsyncClient, admin_token):
        res = await client.put(
            f"{BASE}/rating-config", json={"scale_type": "three_level"}, headers=auth_header(admin_token)
        )
        assert res.status_code == 200
        assert len(res.json()["levels"]) == 3
        assert res.json()["is_default"] is False

    async def test_invalid_weights(self, client: AsyncClient, admin_token):
        """합계가 100이 아닌 가중치는 400."""
        res = await client.put(
            f"{BASE}/rating-config",
            json={"evaluator_weights": {"self": 50, "manager": 50, "peer": 50, "upward": 0}},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 400

    async def test_band_outside_scale(self, client: AsyncClient, admin_token):
        res = await client.put(
            f"{BASE}/rating-config",
            json={"scale_type": "custom", "levels": [{"level": "x", "label": "X", "min_score": 0, "max_score": 9}]},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 422

    async def test_cycle_weights_override(self, client: AsyncClient, admin_token, scored_cycle, employee):
        res = await client.put(
            f"{BASE}/cycles/{scored_cycle.id}/weights",
            json={"evaluator_weights": {"self": 0, "manager": 100, "peer": 0, "upward": 0}},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 200
        assert res.json()["weights_source"] == "cycle"

        res = await client.post(
            f"{BASE}/cycles/{scored_cycle.id}/ratings/{employee.id}/generate", headers=auth_header(admin_token)
        )
        assert res.json()["calculated_score"] == 3.0


class TestGenerationAPI:
    """등급 생성 API 테스트."""

    async def test_generate_single(self, generated):
        assert generated["calculated_score"] == 3.5
        assert generated["calculated_level"] == "meets_expectations"
        assert generated["effective_score"] == 3.5
        assert generated["classification"]["level"] == "meets_expectations"
        assert generated["is_persisted"] is True
        assert generated["evaluation_completeness"] == 100.0

    async def test_generate_unknown_evaluatee(self, client: AsyncClient, admin_token, scored_cycle):
        res = await client.post(
            f"{BASE}/cycles/{scored_cycle.id}/ratings/{uuid.uuid4()}/generate", headers=auth_header(admin_token)
        )
        assert res.status_code == 404

    async def test_generate_bulk(self, client: AsyncClient, admin_token, scored_cycle):
        res = await client.post(f"{BASE}/cycles/{scored_cycle.id}/ratings/generate", headers=auth_header(admin_token))
        assert res.status_code == 200
        data = res.json()
        assert data["total"] == 1
        assert data["success_count"] == 1
        assert data["failed_count"] == 0
        assert data["errors"] == []

    async def test_other_tenant_cannot_see_the_cycle(self, client: AsyncClient, db, scored_cycle):
        other = Organization(name="Other Corp")
        db.add(other)
        await db.commit()
        res = await client.post(
            f"{BASE}/cycles/{scored_cycle.id}/ratings/generate", headers=auth_header(make_token(other))
        )
        assert res.status_code == 404


class TestListingAPI:
    """등급 목록 API 테스트."""

    async def test_persisted_listing(self, client: AsyncClient, admin_token, scored_cycle, generated):
        res = await client.get(f"{BASE}/cycles/{scored_cycle.id}/ratings", headers=auth_header(admin_token))
        assert res.status_code == 200
        data = res.json()
        assert data["source"] == "persisted"
        assert data["stats"]["total"] == 1
        assert data["data"][0]["id"] == generated["id"]
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}

    async def test_live_listing(self, client: AsyncClient, db, org, admin_token, employee, manager):
        cycle = await create_cycle(db, org, status=CycleStatus.ACTIVE)
        await add_assignment(db, cycle, employee, employee, RaterType.SELF, [4, 5])

        res = await client.get(
            f"{BASE}/cycles/{cycle.id}/ratings",
            params={"sort_by": "score", "sort_order": "desc"},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 200
        data = res.json()
        assert data["source"] == "live"
        assert data["data"][0]["id"] is None
        assert data["data"][0]["calculated_score"] == 4.5
        assert data["data"][0]["is_persisted"] is False

    async def test_department_scoped_token(self, client: AsyncClient, db, org):
        cycle = await create_cycle(db, org, status=CycleStatus.ACTIVE)
        sales, support = uuid.uuid4(), uuid.uuid4()
        seller = await create_employee(db, org, "Sam Sales", department_id=sales)
        helper = await create_employee(db, org, "Hana Help", department_id=support)
        await add_assignment(db, cycle, seller, seller, RaterType.SELF, [3, 3])
        await add_assignment(db, cycle, helper, helper, RaterType.SELF, [4, 4])

        token = make_token(org, actor="lead@test.com", departments=[sales])
        # 범위 밖 부서를 요청해도 확장되지 않음 (Requesting another department never widens the scope)
        res = await client.get(
            f"{BASE}/cycles/{cycle.id}/ratings",
            params={"department_ids": [str(support)]},
            headers=auth_header(token),
        )
        assert res.json()["stats"]["total"] == 0

        res = await client.get(f"{BASE}/cycles/{cycle.id}/ratings", headers=auth_header(token))
        assert [row["employee_name"] for row in res.json()["data"]] == ["Sam Sales"]

    async def test_invalid_query(self, client: AsyncClient, admin_token, scored_cycle):
        res = await client.get(
            f"{BASE}/cycles/{scored_cycle.id}/ratings", params={"limit": 0}, headers=auth_header(admin_token)
        )
        assert res.status_code == 422


class TestCalibrationAPI:
    """캘리브레이션 및 잠재력 API 테스트."""

    async def test_short_reason(self, client: AsyncClient, admin_token, generated):
        """사유가 10자 미만이면 400."""
        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/calibrate",
            json={"final_score": 4.2, "reason": "short"},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 400

    async def test_calibrate_and_revert(self, client: AsyncClient, admin_token, generated):
        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/calibrate",
            json={"final_score": 4.2, "reason": REASON},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 200
        data = res.json()
        assert data["effective_score"] == 4.2
        assert data["final_level"] == "exceeds_expectations"
        assert data["adjustment_type"] == "upgrade"
        assert data["calculated_score"] == 3.5
        assert data["calibrated_by"] == "hr@test.com"

        res = await client.post(f"{BASE}/ratings/{generated['id']}/revert", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert res.json()["final_score"] is None
        assert res.json()["adjustment_reason"] == "Reverted by hr@test.com"

        res = await client.get(f"{BASE}/ratings/{generated['id']}/history", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert len(res.json()) == 3

    async def test_score_out_of_range(self, client: AsyncClient, admin_token, generated):
        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/calibrate",
            json={"final_score": 7, "reason": REASON},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 422

    async def test_potential(self, client: AsyncClient, admin_token, generated):
        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/potential", json={"aspiration": 2}, headers=auth_header(admin_token)
        )
        assert res.status_code == 400

        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/potential",
            json={"aspiration": 2, "ability": 2, "engagement": 2},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 200
        assert res.json()["potential_score"] == 3.0
        assert res.json()["nine_box_position"] == "core_player"

        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/nine-box/recalculate", headers=auth_header(admin_token)
        )
        assert res.json()["nine_box_position"] == "core_player"

        res = await client.delete(f"{BASE}/ratings/{generated['id']}/potential", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert res.json()["nine_box_position"] is None

    async def test_unknown_rating(self, client: AsyncClient, admin_token):
        res = await client.get(f"{BASE}/ratings/{uuid.uuid4()}", headers=auth_header(admin_token))
        assert res.status_code == 404

    async def test_rating_of_another_tenant(self, client: AsyncClient, db, generated):
        other = Organization(name="Other Corp")
        db.add(other)
        await db.commit()
        res = await client.get(f"{BASE}/ratings/{generated['id']}", headers=auth_header(make_token(other)))
        assert res.status_code == 404


class TestReadModelAPI:
    """9-box, 분포, 결과 API 테스트."""

    async def test_nine_box_and_distribution(self, client: AsyncClient, admin_token, scored_cycle, generated):
        await client.post(
            f"{BASE}/ratings/{generated['id']}/potential", json={"potential_score": 4.5}, headers=auth_header(admin_token)
        )

        res = await client.get(f"{BASE}/cycles/{scored_cycle.id}/nine-box", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert res.json()["total"] == 1
        assert len(res.json()["grid"]["growth_potential"]) == 1

        res = await client.get(f"{BASE}/cycles/{scored_cycle.id}/distribution", headers=auth_header(admin_token))
        assert res.status_code == 200
        levels = {row["level"]: row for row in res.json()["distribution"]}
        assert levels["meets_expectations"]["calculated_count"] == 1

    async def test_results_and_evaluatees(self, client: AsyncClient, admin_token, scored_cycle, employee):
        res = await client.get(
            f"{BASE}/cycles/{scored_cycle.id}/results/{employee.id}", headers=auth_header(admin_token)
        )
        assert res.status_code == 200
        data = res.json()
        assert data["self_score"] == 4.0
        assert data["manager_score"] == 3.0
        assert [row["competency_code"] for row in data["competency_scores"]] == ["COMM", "EXEC"]

        res = await client.get(f"{BASE}/cycles/{scored_cycle.id}/evaluatees", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert [row["evaluatee_name"] for row in res.json()] == ["Alex Kim"]


class TestCalibrationSessionAPI:
    """캘리브레이션 세션 API 테스트."""

    async def test_session_lifecycle(self, client: AsyncClient, admin_token, scored_cycle, generated):
        res = await client.post(
            f"{BASE}/calibration/sessions",
            json={"cycle_id": str(scored_cycle.id), "name": "Q4 engineering"},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 201
        session_id = res.json()["id"]
        assert res.json()["status"] == "OPEN"

        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/calibrate",
            json={"final_score": 4.2, "reason": REASON, "session_id": session_id},
            headers=auth_header(admin_token),
        )
        assert res.json()["calibration_session_id"] == session_id

        res = await client.get(
            f"{BASE}/calibration/sessions/{session_id}/adjustments", headers=auth_header(admin_token)
        )
        assert [row["action"] for row in res.json()] == ["calibrated"]

        res = await client.post(f"{BASE}/calibration/sessions/{session_id}/close", headers=auth_header(admin_token))
        assert res.status_code == 200
        assert res.json()["status"] == "CLOSED"

        res = await client.post(
            f"{BASE}/ratings/{generated['id']}/calibrate",
            json={"final_score": 4.0, "reason": REASON, "session_id": session_id},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 400


class TestRequestLogging:
    """요청 로깅 미들웨어 테스트."""

    def test_targets_and_masking(self):
        cycle_id, employee_id, rating_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        # 주기 하위의 직원 ID는 등급 ID로 기록하지 않음 (An employee id under a cycle is never a rating id)
        assert _targets_of(f"{BASE}/cycles/{cycle_id}/ratings/{employee_id}/generate") == {
            "cycle_id": str(cycle_id), "employee_id": str(employee_id),
        }
        assert _targets_of(f"{BASE}/cycles/{cycle_id}/results/{employee_id}") == {
            "cycle_id": str(cycle_id), "employee_id": str(employee_id),
        }
        assert _targets_of(f"{BASE}/cycles/{cycle_id}/ratings") == {"cycle_id": str(cycle_id)}
        assert _targets_of(f"{BASE}/ratings/{rating_id}/calibrate") == {"rating_id": str(rating_id)}
        assert _targets_of(f"{BASE}/calibration/sessions/{cycle_id}/close") == {"session_id": str(cycle_id)}
        assert _masked({"reason": "ok", "api_key": "x", "nested": [{"token": "y"}]}) == {
            "reason": "ok", "api_key": "***", "nested": [{"token": "***"}],
        }

    async def test_request_event_falls_back_to_logger(self, client: AsyncClient, admin_token, generated, caplog):
        caplog.set_level(logging.INFO, logger="talent_engine.middleware.axiom_logging")
        rating_id = generated["id"]
        res = await client.post(
            f"{BASE}/ratings/{rating_id}/calibrate",
            json={"final_score": 4.2, "reason": "short"},
            headers=auth_header(admin_token),
        )
        assert res.status_code == 400

        events = [r.event for r in caplog.records if hasattr(r, "event") and r.event["path"].endswith("/calibrate")]
        assert len(events) == 1
        assert events[0]["status_code"] == 400
        assert events[0]["rating_id"] == rating_id
        assert events[0]["actor"] == "hr@test.com"
        assert "error" in events[0]
