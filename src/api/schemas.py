"""
API 요청/응답 Pydantic 스키마

가격 알림, 템플릿, 트리거 이력, 감시 루프 관련 DTO를 정의합니다.
알림 생성/수정 요청은 도메인 모델(AlertCreateRequest, AlertUpdateRequest)을 그대로 사용합니다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.alerts.conditions import ConditionGroup
from src.alerts.models import PostTriggerAction


# ─────────────────────────────────────────────
# 공통
# ─────────────────────────────────────────────

class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = "ok"
    version: str
    env: str
    monitor_running: bool = Field(default=False, description="알림 감시 루프 실행 여부")


class ErrorDetail(BaseModel):
    """에러 응답"""

    code: str
    message: str
    detail: dict | None = None


class ErrorResponse(BaseModel):
    """에러 응답 래퍼"""

    error: ErrorDetail


# ─────────────────────────────────────────────
# 가격 알림
# ─────────────────────────────────────────────

class PriceAlertResponse(BaseModel):
    """가격 알림 응답"""

    id: int = Field(description="알림 ID")
    stock_code: str = Field(description="종목 코드")
    stock_name: str = Field(description="종목명")
    alert_type: str = Field(description="알림 유형")
    conditions: ConditionGroup = Field(description="알림 조건")
    is_active: bool = Field(description="활성 여부")
    sensitivity: float = Field(description="허용 오차")
    cooldown_hours: int = Field(description="쿨다운 (시간)")
    post_trigger_action: PostTriggerAction = Field(description="트리거 후 동작")
    enable_sound: bool
    enable_desktop: bool
    template_id: str | None = None
    last_triggered_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AlertToggleRequest(BaseModel):
    """활성 상태 변경 요청"""

    is_active: bool = Field(description="변경할 활성 상태")


class AlertToggleResponse(BaseModel):
    """활성 상태 변경 응답"""

    id: int
    is_active: bool
    message: str


class AlertDeleteResponse(BaseModel):
    """삭제 응답"""

    message: str


# ─────────────────────────────────────────────
# 템플릿 / 이력
# ─────────────────────────────────────────────

class AlertTemplateResponse(BaseModel):
    """알림 템플릿 응답"""

    id: str
    name: str
    description: str
    alert_type: str
    conditions: ConditionGroup
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TemplateInstantiateRequest(BaseModel):
    """템플릿으로 알림 생성 요청"""

    stock_code: str = Field(..., min_length=1, max_length=20, description="종목 코드")
    stock_name: str = Field(..., min_length=1, max_length=100, description="종목명")
    params: dict[str, Any] = Field(
        default_factory=dict,
        description='조건 값 파라미터 (예: {"close_price": 75000} 또는 {"value": 7})',
    )


class TriggerHistoryResponse(BaseModel):
    """트리거 이력 응답"""

    id: int
    alert_id: int
    stock_code: str
    stock_name: str
    alert_type: str
    trigger_price: float
    trigger_message: str
    triggered_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ─────────────────────────────────────────────
# 감시 루프
# ─────────────────────────────────────────────

class AlertNotificationResponse(BaseModel):
    """트리거된 알림 페이로드"""

    alert_id: int
    stock_code: str
    stock_name: str
    alert_type: str
    trigger_price: float
    price_change: float
    message: str
    triggered_at: datetime
    enable_sound: bool
    enable_desktop: bool

    model_config = ConfigDict(from_attributes=True)


class StockCheckResponse(BaseModel):
    """단일 종목 수동 체크 응답"""

    stock_code: str
    triggered_count: int
    triggered_alerts: list[AlertNotificationResponse] = Field(default_factory=list)
    message: str


class MonitorStatusResponse(BaseModel):
    """감시 루프 상태 응답"""

    is_running: bool
    check_interval_seconds: float
    next_run_time: str | None = None
    has_callback: bool
    subscribers: int
    total_ticks: int
    last_tick: dict[str, Any] | None = None


class MonitorIntervalRequest(BaseModel):
    """체크 주기 변경 요청"""

    seconds: float = Field(gt=0, description="체크 주기 (초)")
