"""관리자 API 라우터 패키지 — 모든 관리자 엔드포인트 통합.

Admin API Router package — Aggregates all admin-facing endpoints
into a single router for inclusion in the FastAPI application.

Included routers:
    - rating_config: 조직 등급 척도/가중치 (Tenant scale and weights)
    - cycles: 등급 생성, 목록, 9-box, 분포, 결과 (Generation, listing, grid, distribution, results)
    - ratings: 등급 상세, 캘리브레이션, 잠재력 (Rating detail, calibration, potential)
    - calibration: 캘리브레이션 세션 (Calibration sessions)
"""

from fastapi import APIRouter

from talent_engine.api.admin.calibration import router as calibration_router
from talent_engine.api.admin.cycles import router as cycles_router
from talent_engine.api.admin.rating_config import router as rating_config_router
from talent_engine.api.admin.ratings import router as ratings_router

admin_router: APIRouter = APIRouter()

admin_router.include_router(rating_config_router, prefix="/rating-config", tags=["Rating Config"])
# 주기 하위: /cycles/{cycle_id}/ratings, /nine-box, /distribution, /results, /weights
admin_router.include_router(cycles_router, prefix="/cycles", tags=["Cycles"])
admin_router.include_router(ratings_router, prefix="/ratings", tags=["Ratings"])
admin_router.include_router(calibration_router, prefix="/calibration", tags=["Calibration"])
