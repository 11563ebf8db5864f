"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Every admin call is recorded as one structured event: endpoint, method,
masked body/params, status, error reason, the acting identity and the
cycle, rating, session or employee the call targets. Without Axiom credentials the event is
written to the stdlib logger instead.
"""

import json
import logging
import re
import time
from typing import Any

import jwt
from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from talent_engine.config import settings
from talent_engine.utils.jwt import decode_token

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 패턴 (Keys masked in bodies and query strings)
_SENSITIVE_KEYS = re.compile(r"(secret|token|authorization|api_?key|credential)", re.IGNORECASE)

# 로깅 제외 경로 (Paths never logged)
_SKIP_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})

_UUID_SEGMENT = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")

# 경로 세그먼트 → 이벤트 키 (/cycles/<id>, /ratings/<id>, /calibration/sessions/<id>)
# Under /cycles/<id>/ the ratings and results segments carry an employee id.
_TOP_LEVEL_TARGETS = {"cycles": "cycle_id", "ratings": "rating_id", "sessions": "session_id"}
_CYCLE_NESTED_TARGETS = {"ratings": "employee_id", "results": "employee_id"}

_MAX_BODY_CHARS = 2000
_MAX_ERROR_CHARS = 500


def _masked(data: Any, depth: int = 0) -> Any:
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {key: "***" if _SENSITIVE_KEYS.search(key) else _masked(value, depth + 1) for key, value in data.items()}
    if isinstance(data, list):
        return [_masked(item, depth + 1) for item in data[:20]]
    return data


def _identity_of(request: Request) -> dict[str, str]:
    """검증된 토큰의 행위자/테넌트 (Actor and tenant of a verifiable bearer token)."""
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return {}
    try:
        payload = decode_token(token)
    except jwt.InvalidTokenError:
        return {}
    identity: dict[str, str] = {}
    if payload.get("sub"):
        identity["actor"] = payload["sub"]
    if payload.get("org"):
        identity["organization_id"] = payload["org"]
    return identity


def _targets_of(path: str) -> dict[str, str]:
    """URL 경로의 주기/등급/세션 ID (Cycle, rating or session ids in the path)."""
    segments = [segment for segment in path.split("/") if segment]
    targets: dict[str, str] = {}
    for kind, value in zip(segments, segments[1:]):
        if not _UUID_SEGMENT.fullmatch(value):
            continue
        names = _CYCLE_NESTED_TARGETS if "cycle_id" in targets else _TOP_LEVEL_TARGETS
        key = names.get(kind) or _TOP_LEVEL_TARGETS.get(kind)
        if key and key not in targets:
            targets[key] = value
    return targets


async def _read_body(request: Request) -> Any:
    if request.method not in ("POST", "PUT", "PATCH"):
        return None
    raw = await request.body()
    if not raw:
        return None
    try:
        text = json.dumps(_masked(json.loads(raw)), default=str)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return "(non-json body)"
    return text if len(text) <= _MAX_BODY_CHARS else text[:_MAX_BODY_CHARS] + "...(truncated)"


def _error_reason(body: bytes) -> str:
    """에러 응답 본문의 detail (The `detail` of an error response, or its raw text)."""
    try:
        data = json.loads(body)
        reason = data.get("detail", data) if isinstance(data, dict) else data
        return str(reason)[:_MAX_ERROR_CHARS]
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="replace")[:_MAX_ERROR_CHARS]


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """요청 단위 구조화 로그 (One structured event per API request)."""

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._dataset: str = settings.AXIOM_DATASET
        self._client: AxiomClient | None = None
        if settings.AXIOM_API_TOKEN and self._dataset:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    def _emit(self, event: dict[str, Any]) -> None:
        if self._client is None:
            logger.info(
                "%s %s -> %s (%sms)", event["method"], event["path"], event["status_code"], event["duration_ms"],
                extra={"event": event},
            )
            return
        try:
            self._client.ingest_events(self._dataset, [event])
        except Exception:  # 로깅 실패는 요청에 영향 없음 (Log failures never fail the request)
            logger.warning("Axiom ingest failed for %s %s", event["method"], event["path"], exc_info=True)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in _SKIP_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        event: dict[str, Any] = {"method": request.method, "path": path, "status_code": 500}
        event.update(_identity_of(request))
        event.update(_targets_of(path))
        if request.query_params:
            event["query_params"] = _masked(dict(request.query_params))
        body = await _read_body(request)
        if body is not None:
            event["request_body"] = body

        try:
            response = await call_next(request)
            event["status_code"] = response.status_code
            if response.status_code >= 400:
                # 본문을 소비했으므로 새 응답으로 감쌈 (Body is consumed, so re-wrap it)
                content = b"".join([
                    chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
                    async for chunk in response.body_iterator
                ])
                event["error"] = _error_reason(content)
                response = Response(
                    content=content,
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
        except Exception as exc:
            event["error"] = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            event["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            self._emit(event)

        return response
