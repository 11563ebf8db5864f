"""FastAPI 의존성 주입 모듈 — 신원 토큰 해석.

FastAPI dependency injection module — Identity resolution.
The engine does not manage users; it trusts the identity layer's JWT and
only reads who is acting, for which tenant and within which departments.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. decode_token()이 JWT를 검증하고 페이로드를 반환
       (decode_token verifies JWT and returns payload)
    4. "sub" → 행위자, "org" → 테넌트, "depts" → 부서 범위
       ("sub" is the actor, "org" the tenant, "depts" the department scope)
"""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from talent_engine.utils.exceptions import UnauthorizedError
from talent_engine.utils.jwt import decode_token

# HTTP Bearer 토큰 추출기 — Authorization 헤더에서 JWT 토큰 추출
# (Extracts JWT token from Authorization: Bearer <token> header)
security: HTTPBearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TenantContext:
    """요청 신원 컨텍스트.

    Identity of a request.

    Attributes:
        organization_id: 테넌트 ID (Tenant every query is scoped to)
        actor: 행위자 식별자 (Acting user, written to audit records)
        department_ids: 부서 범위, None이면 전체 (Department scope; None means all)
    """

    organization_id: UUID
    actor: str
    department_ids: list[UUID] | None = None


async def get_tenant_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TenantContext:
    """JWT 토큰에서 요청 신원을 추출합니다.

    Decode the bearer token and return the request's tenant context.

    Raises:
        UnauthorizedError: 토큰이 없거나 유효하지 않거나 만료됨 (Missing, invalid or expired token)
    """
    if credentials is None:
        raise UnauthorizedError()
    try:
        payload: dict = decode_token(credentials.credentials)
        # 토큰 타입 검증 — Reject refresh tokens used as access tokens
        if payload.get("type") != "access":
            raise UnauthorizedError("Invalid token type")
        actor: str | None = payload.get("sub")
        organization_id: str | None = payload.get("org")
        if not actor or not organization_id:
            raise UnauthorizedError("Invalid token")
        depts = payload.get("depts")
        return TenantContext(
            organization_id=UUID(organization_id),
            actor=actor,
            department_ids=[UUID(d) for d in depts] if depts is not None else None,
        )
    except UnauthorizedError:
        raise
    except (jwt.ExpiredSignatureError, jwt.InvalidTokenError, KeyError, ValueError, TypeError):
        raise UnauthorizedError("Invalid or expired token")


def scoped_departments(tenant: TenantContext, requested: list[UUID] | None) -> list[UUID] | None:
    """요청 부서를 토큰 범위로 제한합니다.

    Narrow the requested departments to the token's scope. A token without a
    scope accepts any request; a scoped token never widens beyond its scope.
    """
    if tenant.department_ids is None:
        return requested
    if not requested:
        return tenant.department_ids
    return [d for d in requested if d in tenant.department_ids]
