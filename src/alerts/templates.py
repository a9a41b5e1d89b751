"""
알림 템플릿

기본 템플릿 목록과 템플릿 파라미터 적용 로직입니다.
템플릿 조건은 bare JSON 배열(logic=AND)로 저장됩니다.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from src.alerts.conditions import ConditionGroup, parse_condition_group
from src.alerts.models import AlertTemplate
from src.alerts.repository import AlertRepository
from src.utils.logger import get_logger

logger = get_logger(__name__)

# 범용 파라미터 키 (모든 조건의 value에 적용)
GENERIC_VALUE_KEY = "value"

DEFAULT_TEMPLATES: list[dict[str, str]] = [
    {
        "id": "template_price_change_5",
        "name": "등락률 알림 (5%)",
        "description": "당일 등락률이 5%를 넘으면 알림",
        "alert_type": "price_change",
        "conditions": '[{"field": "price_change_percent", "operator": ">", "value": 5}]',
    },
    {
        "id": "template_price_change_neg_5",
        "name": "등락률 알림 (-5%)",
        "description": "당일 등락률이 -5% 아래로 내려가면 알림",
        "alert_type": "price_change",
        "conditions": '[{"field": "price_change_percent", "operator": "<", "value": -5}]',
    },
    {
        "id": "template_target_price",
        "name": "목표가 알림",
        "description": "현재가가 목표가에 도달하면 알림",
        "alert_type": "target_price",
        "conditions": '[{"field": "close_price", "operator": ">=", "value": 0.0}]',
    },
    {
        "id": "template_stop_loss",
        "name": "손절가 알림",
        "description": "현재가가 손절가 아래로 내려가면 알림",
        "alert_type": "stop_loss",
        "conditions": '[{"field": "close_price", "operator": "<=", "value": 0.0}]',
    },
    {
        "id": "template_high_new",
        "name": "신고가 돌파",
        "description": "고가가 기간 최고가를 돌파하면 알림",
        "alert_type": "high_low",
        "conditions": (
            '[{"field": "high_price", "operator": ">", "value": 0.0,'
            ' "reference": "historical_high"}]'
        ),
    },
    {
        "id": "template_low_new",
        "name": "신저가 이탈",
        "description": "저가가 기간 최저가를 이탈하면 알림",
        "alert_type": "high_low",
        "conditions": (
            '[{"field": "low_price", "operator": "<", "value": 0.0,'
            ' "reference": "historical_low"}]'
        ),
    },
    {
        "id": "template_ma5_golden_cross",
        "name": "MA5/MA20 골든크로스",
        "description": "5일 이동평균이 20일 이동평균을 상향 돌파하면 알림",
        "alert_type": "ma_deviation",
        "conditions": '[{"field": "ma5", "operator": ">", "value": 0.0, "reference": "ma20"}]',
    },
    {
        "id": "template_volume_surge",
        "name": "거래량 급증",
        "description": "거래량이 평균의 2배를 넘으면 알림",
        "alert_type": "combined",
        "conditions": '[{"field": "volume_ratio", "operator": ">", "value": 2}]',
    },
]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def apply_template_params(
    group: ConditionGroup,
    params: Mapping[str, Any] | None,
) -> ConditionGroup:
    """템플릿 조건 그룹에 파라미터 적용

    조건마다 필드명 키를 먼저 적용한 뒤 범용 "value" 키를 적용합니다.
    두 키가 모두 있으면 범용 키가 우선합니다. 숫자가 아닌 값은 무시합니다.

    Args:
        group: 템플릿 조건 그룹 (변경되지 않음)
        params: 파라미터 (예: {"close_price": 1850.0} 또는 {"value": 7})

    Returns:
        파라미터가 적용된 새 ConditionGroup
    """
    result = group.model_copy(deep=True)
    if not params:
        return result

    for condition in result.conditions:
        field_value = params.get(condition.field.value)
        if _is_number(field_value):
            condition.value = float(field_value)
        generic_value = params.get(GENERIC_VALUE_KEY)
        if _is_number(generic_value):
            condition.value = float(generic_value)
    return result


def default_templates() -> list[AlertTemplate]:
    """기본 템플릿 목록 (조건 검증 포함)"""
    return [
        AlertTemplate(
            id=raw["id"],
            name=raw["name"],
            description=raw["description"],
            alert_type=raw["alert_type"],
            conditions=parse_condition_group(raw["conditions"]),
        )
        for raw in DEFAULT_TEMPLATES
    ]


def seed_default_templates(repository: AlertRepository) -> int:
    """저장소에 없는 기본 템플릿만 추가

    Returns:
        새로 추가된 템플릿 수
    """
    added = 0
    for template in default_templates():
        if repository.get_template(template.id) is not None:
            continue
        repository.save_template(template)
        added += 1
    logger.info("기본 알림 템플릿 등록 완료: %d개 추가", added)
    return added
