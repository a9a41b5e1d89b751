"""
커스텀 예외 클래스 및 FastAPI 예외 핸들러

모든 비즈니스 예외는 AppError를 상속하며,
HTTP 응답은 일관된 JSON 형식으로 반환됩니다.

응답 형식::

    {
        "error": {
            "code": "NOT_FOUND",
            "message": "요청한 리소스를 찾을 수 없습니다.",
            "detail": { ... }  // optional
        }
    }
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ───────────────────────── Base ─────────────────────────


class AppError(Exception):
    """애플리케이션 최상위 예외"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "서버 내부 오류가 발생했습니다."

    def __init__(
        self,
        message: str | None = None,
        *,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.detail = detail
        super().__init__(self.message)


# ───────────────────── Concrete Errors ──────────────────


class NotFoundError(AppError):
    """리소스를 찾을 수 없음 (404)"""

    status_code = 404
    code = "NOT_FOUND"
    message = "요청한 리소스를 찾을 수 없습니다."


class ValidationError(AppError):
    """입력 검증 실패 (422)

    알림 정의, 조건 JSON, 민감도/쿨다운 범위, 트리거 후 동작 검증 실패 시
    생성/수정/템플릿 적용 시점에 동기적으로 발생합니다.
    """

    status_code = 422
    code = "VALIDATION_ERROR"
    message = "입력 데이터가 유효하지 않습니다."


class AlertError(AppError):
    """알림 관련 오류 (400)"""

    status_code = 400
    code = "ALERT_ERROR"
    message = "알림 처리에 실패했습니다."


class RepositoryError(AlertError):
    """알림 저장소 읽기/쓰기 실패 (500)"""

    status_code = 500
    code = "REPOSITORY_ERROR"
    message = "알림 저장소 처리에 실패했습니다."


class DataUnavailableError(AppError):
    """시세/K선 데이터 조회 실패 (502)"""

    status_code = 502
    code = "DATA_UNAVAILABLE"
    message = "시세 데이터를 가져오지 못했습니다."


class MonitorStateError(AppError):
    """감시 루프 설정/상태 오류 (409)"""

    status_code = 409
    code = "MONITOR_STATE_ERROR"
    message = "알림 감시 루프 상태가 올바르지 않습니다."


# ──────────────────── Exception Handlers ────────────────


def _error_body(code: str, message: str, detail: Any = None) -> dict:
    body: dict[str, Any] = {"error": {"code": code, "message": message}}
    if detail is not None:
        body["error"]["detail"] = detail
    return body


async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    """AppError 계열 예외를 일관된 JSON으로 변환"""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, exc.detail),
    )


async def unhandled_error_handler(
    _request: Request, _exc: Exception
) -> JSONResponse:
    """예상치 못한 예외에 대한 안전한 500 응답"""
    return JSONResponse(
        status_code=500,
        content=_error_body("INTERNAL_ERROR", "서버 내부 오류가 발생했습니다."),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """FastAPI 앱에 예외 핸들러를 등록합니다."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
