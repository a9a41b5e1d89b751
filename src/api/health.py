"""
헬스체크 엔드포인트

앱 버전/환경과 함께 DB 연결, 알림 감시 루프 상태를 점검합니다.
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Request
from sqlalchemy import text

from config.settings import settings
from src.api.schemas import HealthResponse
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["System"])

APP_VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="헬스체크",
)
async def health_check(request: Request) -> HealthResponse:
    monitor = getattr(request.app.state, "monitor", None)
    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        env=settings.app_env,
        monitor_running=bool(monitor and monitor.is_running),
    )


@router.get(
    "/health/detailed",
    summary="상세 헬스체크",
    description="DB 연결 상태와 알림 감시 루프 상태를 포함합니다.",
)
def detailed_health_check(request: Request) -> dict[str, Any]:
    components: dict[str, Any] = {}

    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        components["database"] = {"status": "unconfigured"}
    else:
        start = time.monotonic()
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            components["database"] = {
                "status": "up",
                "latency_ms": round((time.monotonic() - start) * 1000, 2),
            }
        except Exception as e:
            logger.warning("DB 헬스체크 실패: %s", e)
            components["database"] = {
                "status": "down",
                "message": f"DB 연결 실패: {type(e).__name__}",
            }

    monitor = getattr(request.app.state, "monitor", None)
    components["monitor"] = (
        monitor.get_status() if monitor is not None else {"status": "not_initialized"}
    )

    overall = "unhealthy" if components["database"]["status"] == "down" else "healthy"
    return {
        "status": overall,
        "version": APP_VERSION,
        "env": settings.app_env,
        "components": components,
    }
