"""
가격 알림 도메인 모델

알림 정의(PriceAlert), 생성/수정 요청, 트리거 이력, 템플릿을 정의합니다.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.alerts.conditions import ConditionGroup, parse_condition_group

MIN_SENSITIVITY = 0.0
MAX_SENSITIVITY = 0.1
MIN_COOLDOWN_HOURS = 0
MAX_COOLDOWN_HOURS = 24


class PostTriggerAction(str, Enum):
    """트리거 후 동작"""

    CONTINUE = "continue"  # 쿨다운 후 계속 감시
    DISABLE = "disable"  # 비활성화
    ONCE = "once"  # 1회만 트리거 (disable과 동일하게 비활성화)

    @property
    def disables_alert(self) -> bool:
        return self in (PostTriggerAction.DISABLE, PostTriggerAction.ONCE)


def _coerce_conditions(v: Any) -> Any:
    # JSON 문자열/배열도 받아들이고, 형식 오류는 앱 ValidationError로 올림
    if isinstance(v, ConditionGroup):
        return v
    return parse_condition_group(v)


class AlertCreateRequest(BaseModel):
    """알림 생성 요청"""

    stock_code: str = Field(..., min_length=1, max_length=20)
    stock_name: str = Field(..., min_length=1, max_length=100)
    alert_type: str = Field(..., min_length=1, max_length=30)
    conditions: ConditionGroup
    sensitivity: float = Field(default=0.001, ge=MIN_SENSITIVITY, le=MAX_SENSITIVITY)
    cooldown_hours: int = Field(default=1, ge=MIN_COOLDOWN_HOURS, le=MAX_COOLDOWN_HOURS)
    post_trigger_action: PostTriggerAction = PostTriggerAction.CONTINUE
    enable_sound: bool = True
    enable_desktop: bool = True
    template_id: str | None = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_conditions(cls, v: Any) -> Any:
        return _coerce_conditions(v)


class AlertUpdateRequest(AlertCreateRequest):
    """알림 수정 요청 (전체 교체)"""

    is_active: bool = True


class PriceAlert(BaseModel):
    """가격 알림 정의"""

    id: int | None = None
    stock_code: str
    stock_name: str
    alert_type: str
    conditions: ConditionGroup
    is_active: bool = True
    sensitivity: float = 0.001
    cooldown_hours: int = 1
    post_trigger_action: PostTriggerAction = PostTriggerAction.CONTINUE
    enable_sound: bool = True
    enable_desktop: bool = True
    template_id: str | None = None
    last_triggered_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_conditions(cls, v: Any) -> Any:
        return _coerce_conditions(v)


class TriggerHistory(BaseModel):
    """알림 트리거 이력 (추가 전용)"""

    id: int | None = None
    alert_id: int
    stock_code: str
    stock_name: str = ""
    alert_type: str
    trigger_price: float
    trigger_message: str
    triggered_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AlertTemplate(BaseModel):
    """알림 템플릿 (읽기 전용)"""

    id: str
    name: str
    description: str = ""
    alert_type: str
    conditions: ConditionGroup
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_conditions(cls, v: Any) -> Any:
        return _coerce_conditions(v)
