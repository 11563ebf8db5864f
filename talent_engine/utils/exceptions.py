"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Provides pre-configured HTTPException subclasses for the rating engine's
error taxonomy. Services raise these directly so routers never have to
translate errors, and bulk jobs can report ``detail`` per failed evaluatee.

Usage:
    from talent_engine.utils.exceptions import NotFoundError, BadRequestError
    raise NotFoundError("Rating not found")
    raise BadRequestError("potential_score or all three factors are required")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 요청한 리소스를 찾을 수 없을 때 사용.

    404 Not Found exception.
    Raised for an unknown cycle, evaluatee, rating or calibration session.
    Terminal for the caller; never retried by the engine.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """400 Bad Request 예외 — 잘못된 요청 데이터 시 사용.

    400 Bad Request exception.
    Raised when input is invalid beyond what Pydantic validation catches
    (e.g. malformed potential input, non-contiguous level scale,
    calibrating inside a closed session). Always raised before any write.

    Args:
        detail: 오류 메시지 (Error message, default: "Bad request")
    """

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    """401 Unauthorized 예외 — 인증 실패 시 사용.

    401 Unauthorized exception.
    Raised when the identity token is missing, invalid, or expired.

    Args:
        detail: 오류 메시지 (Error message, default: "Authentication required")
    """

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def error_message(exc: BaseException) -> str:
    """예외에서 사용자용 메시지를 추출합니다 (Extract a caller-facing message)."""
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    return str(exc) or type(exc).__name__
