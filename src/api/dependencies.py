"""
FastAPI 의존성 주입

앱 팩토리(create_app)가 app.state에 올려 둔 알림 생명주기 매니저와
감시 루프를 API 핸들러에 주입합니다.
"""

from __future__ import annotations

from fastapi import Request

from src.alerts.lifecycle import AlertLifecycleManager
from src.alerts.monitor import AlertMonitor
from src.exceptions import MonitorStateError


def get_lifecycle(request: Request) -> AlertLifecycleManager:
    """
    알림 생명주기 매니저 의존성.

    Usage::

        @router.get("/price-alerts")
        def list_alerts(lifecycle: AlertLifecycleManager = Depends(get_lifecycle)):
            return lifecycle.list_alerts()
    """
    return request.app.state.lifecycle


def get_monitor(request: Request) -> AlertMonitor:
    """
    감시 루프 의존성.

    감시 루프는 lifespan 시작 시 생성되므로, 그 전에 호출되면 MonitorStateError를 발생시킵니다.
    """
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None:
        raise MonitorStateError("알림 감시 루프가 초기화되지 않았습니다.")
    return monitor
