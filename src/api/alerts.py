"""
가격 알림 API 라우터

알림 생성/조회/수정/삭제, 활성 상태 변경, 템플릿 기반 생성,
트리거 이력 조회, 단일 종목 수동 체크, 감시 루프 제어 기능을 제공합니다.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.alerts.lifecycle import AlertLifecycleManager
from src.alerts.models import AlertCreateRequest, AlertUpdateRequest
from src.alerts.monitor import AlertMonitor
from src.api.dependencies import get_lifecycle, get_monitor
from src.api.schemas import (
    AlertDeleteResponse,
    AlertNotificationResponse,
    AlertTemplateResponse,
    AlertToggleRequest,
    AlertToggleResponse,
    MonitorIntervalRequest,
    MonitorStatusResponse,
    PriceAlertResponse,
    StockCheckResponse,
    TemplateInstantiateRequest,
    TriggerHistoryResponse,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/price-alerts", tags=["PriceAlerts"])


# ───────────────── 템플릿 / 이력 / 감시 루프 ─────────────────
# /{alert_id} 경로보다 먼저 등록


@router.get(
    "/templates",
    response_model=list[AlertTemplateResponse],
    summary="알림 템플릿 목록",
    description="기본 제공 알림 템플릿을 조회합니다.",
)
def list_templates(
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> list[AlertTemplateResponse]:
    return [
        AlertTemplateResponse.model_validate(template)
        for template in lifecycle.list_templates()
    ]


@router.post(
    "/templates/{template_id}/instantiate",
    response_model=PriceAlertResponse,
    status_code=201,
    summary="템플릿으로 알림 생성",
    description=(
        "템플릿 조건을 복사해 파라미터를 적용한 뒤 알림을 생성합니다.\n\n"
        "필드명 키(`close_price` 등)와 범용 `value` 키가 모두 있으면 `value`가 우선합니다."
    ),
)
def instantiate_template(
    template_id: str,
    req: TemplateInstantiateRequest,
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> PriceAlertResponse:
    alert = lifecycle.create_alert_from_template(
        template_id,
        req.stock_code,
        req.stock_name,
        req.params,
    )
    return PriceAlertResponse.model_validate(alert)


@router.get(
    "/history",
    response_model=list[TriggerHistoryResponse],
    summary="트리거 이력 조회",
    description="알림 트리거 이력을 최신순으로 조회합니다.",
)
def get_trigger_history(
    stock_code: str | None = Query(default=None, description="종목 코드 (없으면 전체)"),
    limit: int | None = Query(default=None, ge=1, le=1000, description="최대 조회 건수"),
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> list[TriggerHistoryResponse]:
    return [
        TriggerHistoryResponse.model_validate(history)
        for history in lifecycle.get_trigger_history(stock_code, limit)
    ]


@router.post(
    "/check/{stock_code}",
    response_model=StockCheckResponse,
    summary="단일 종목 수동 체크",
    description="감시 주기와 무관하게 특정 종목의 활성 알림을 즉시 확인합니다.",
)
async def check_stock(
    stock_code: str,
    monitor: AlertMonitor = Depends(get_monitor),
) -> StockCheckResponse:
    fired = await monitor.check_stock_alerts(stock_code)
    return StockCheckResponse(
        stock_code=stock_code,
        triggered_count=len(fired),
        triggered_alerts=[
            AlertNotificationResponse.model_validate(n.model_dump()) for n in fired
        ],
        message=f"{len(fired)}개의 알림이 트리거되었습니다." if fired else "알림이 트리거되지 않았습니다.",
    )


@router.get(
    "/monitor",
    response_model=MonitorStatusResponse,
    summary="감시 루프 상태",
)
async def monitor_status(
    monitor: AlertMonitor = Depends(get_monitor),
) -> MonitorStatusResponse:
    return MonitorStatusResponse(**monitor.get_status())


@router.post(
    "/monitor/start",
    response_model=MonitorStatusResponse,
    summary="감시 루프 시작",
    description="이미 실행 중이면 아무 것도 하지 않습니다.",
)
async def start_monitor(
    monitor: AlertMonitor = Depends(get_monitor),
) -> MonitorStatusResponse:
    monitor.start()
    return MonitorStatusResponse(**monitor.get_status())


@router.post(
    "/monitor/stop",
    response_model=MonitorStatusResponse,
    summary="감시 루프 중지",
)
async def stop_monitor(
    monitor: AlertMonitor = Depends(get_monitor),
) -> MonitorStatusResponse:
    monitor.stop()
    return MonitorStatusResponse(**monitor.get_status())


@router.put(
    "/monitor/interval",
    response_model=MonitorStatusResponse,
    summary="체크 주기 변경",
    description="이미 대기 중인 주기는 그대로 두고 다음 주기부터 반영됩니다.",
)
async def set_monitor_interval(
    req: MonitorIntervalRequest,
    monitor: AlertMonitor = Depends(get_monitor),
) -> MonitorStatusResponse:
    monitor.set_check_interval(req.seconds)
    return MonitorStatusResponse(**monitor.get_status())


# ───────────────── 알림 CRUD ─────────────────


@router.post(
    "",
    response_model=PriceAlertResponse,
    status_code=201,
    summary="가격 알림 생성",
    description="조건 그룹(JSON 객체 또는 배열)으로 새 가격 알림을 생성합니다.",
)
def create_alert(
    req: AlertCreateRequest,
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> PriceAlertResponse:
    alert = lifecycle.create_alert(req)
    return PriceAlertResponse.model_validate(alert)


@router.get(
    "",
    response_model=list[PriceAlertResponse],
    summary="가격 알림 목록",
    description="전체 또는 특정 종목의 가격 알림을 조회합니다.",
)
def list_alerts(
    stock_code: str | None = Query(default=None, description="종목 코드"),
    active_only: bool = Query(default=False, description="활성 알림만 조회"),
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> list[PriceAlertResponse]:
    if stock_code:
        alerts = lifecycle.get_alerts_by_stock_code(stock_code)
        if active_only:
            alerts = [a for a in alerts if a.is_active]
    elif active_only:
        alerts = lifecycle.get_active_alerts()
    else:
        alerts = lifecycle.list_alerts()
    return [PriceAlertResponse.model_validate(alert) for alert in alerts]


@router.get(
    "/{alert_id}",
    response_model=PriceAlertResponse,
    summary="가격 알림 단일 조회",
)
def get_alert(
    alert_id: int,
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> PriceAlertResponse:
    return PriceAlertResponse.model_validate(lifecycle.get_alert(alert_id))


@router.put(
    "/{alert_id}",
    response_model=PriceAlertResponse,
    summary="가격 알림 수정",
    description="알림 정의 전체를 교체합니다. 마지막 트리거 시각은 유지됩니다.",
)
def update_alert(
    alert_id: int,
    req: AlertUpdateRequest,
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> PriceAlertResponse:
    alert = lifecycle.update_alert(alert_id, req)
    return PriceAlertResponse.model_validate(alert)


@router.delete(
    "/{alert_id}",
    response_model=AlertDeleteResponse,
    summary="가격 알림 삭제",
)
def delete_alert(
    alert_id: int,
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> AlertDeleteResponse:
    lifecycle.delete_alert(alert_id)
    return AlertDeleteResponse(message=f"알림 ID {alert_id}가 삭제되었습니다.")


@router.put(
    "/{alert_id}/toggle",
    response_model=AlertToggleResponse,
    summary="가격 알림 활성/비활성",
)
def toggle_alert(
    alert_id: int,
    req: AlertToggleRequest,
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle),
) -> AlertToggleResponse:
    alert = lifecycle.toggle_alert_status(alert_id, req.is_active)
    return AlertToggleResponse(
        id=alert.id,
        is_active=alert.is_active,
        message=f"알림이 {'활성화' if alert.is_active else '비활성화'}되었습니다.",
    )
