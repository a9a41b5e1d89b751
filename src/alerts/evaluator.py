"""
알림 조건 평가기

ConditionGroup을 MarketSnapshot에 대해 평가하여
(트리거 여부, 메시지)를 반환하는 순수 함수 모음입니다.

평가는 어떤 입력에 대해서도 예외를 던지지 않습니다. 알 수 없는 필드나
연산자는 "트리거 안 됨 + 진단 메시지"로 처리됩니다.
"""

from __future__ import annotations

import operator
from collections.abc import Callable

from src.alerts.conditions import (
    ComparisonOperator,
    Condition,
    ConditionField,
    ConditionGroup,
    ConditionReference,
    LogicOperator,
)
from src.alerts.snapshot import MarketSnapshot

# 필드 → 스냅샷 접근자
_FIELD_ACCESSORS: dict[ConditionField, Callable[[MarketSnapshot], float]] = {
    ConditionField.PRICE_CHANGE_PERCENT: lambda s: s.price_change_percent,
    ConditionField.CLOSE_PRICE: lambda s: s.close_price,
    ConditionField.HIGH_PRICE: lambda s: s.high_price,
    ConditionField.LOW_PRICE: lambda s: s.low_price,
    ConditionField.OPEN_PRICE: lambda s: s.open_price,
    ConditionField.VOLUME_RATIO: lambda s: s.volume_ratio,
    ConditionField.MA5: lambda s: s.ma5,
    ConditionField.MA10: lambda s: s.ma10,
    ConditionField.MA20: lambda s: s.ma20,
}


def _approx_equal(actual: float, expected: float, sensitivity: float) -> bool:
    return abs(actual - expected) <= sensitivity


def _approx_not_equal(actual: float, expected: float, sensitivity: float) -> bool:
    return abs(actual - expected) > sensitivity


# 연산자 → 비교 함수 (actual, value, sensitivity)
_COMPARATORS: dict[ComparisonOperator, Callable[[float, float, float], bool]] = {
    ComparisonOperator.GT: lambda a, v, _s: operator.gt(a, v),
    ComparisonOperator.GE: lambda a, v, _s: operator.ge(a, v),
    ComparisonOperator.LT: lambda a, v, _s: operator.lt(a, v),
    ComparisonOperator.LE: lambda a, v, _s: operator.le(a, v),
    ComparisonOperator.EQ: _approx_equal,
    ComparisonOperator.NE: _approx_not_equal,
}


def _label(member: object) -> str:
    return str(getattr(member, "value", member))


def evaluate_condition(
    condition: Condition,
    snapshot: MarketSnapshot,
    sensitivity: float,
) -> tuple[bool, str]:
    """단일 조건 평가

    기준값(reference)이 지정된 일부 조합은 리터럴 비교 대신 상대 비교를 사용합니다.

    - high_price + historical_high: 고가 > 역사적 고가 × (1 - sensitivity)
    - low_price + historical_low: 저가 < 역사적 저가 × (1 + sensitivity)
    - ma5 + ma20: MA5 >= MA20 × (1 - sensitivity) (골든크로스 근접)

    역사적 고가/저가가 0 이하(K선 없음)이면 리터럴 비교 결과를 그대로 씁니다.

    Returns:
        (트리거 여부, 메시지)
    """
    accessor = _FIELD_ACCESSORS.get(condition.field)
    if accessor is None:
        return False, f"unknown field: {_label(condition.field)}"

    comparator = _COMPARATORS.get(condition.operator)
    if comparator is None:
        return False, f"unknown operator: {_label(condition.operator)}"

    actual = accessor(snapshot)
    triggered = comparator(actual, condition.value, sensitivity)
    message = (
        f"{_label(condition.field)} {actual:.2f} "
        f"{_label(condition.operator)} {condition.value:.2f}"
    )

    field = condition.field
    reference = condition.reference

    if field == ConditionField.HIGH_PRICE and reference == ConditionReference.HISTORICAL_HIGH:
        if snapshot.historical_high > 0:
            triggered = snapshot.high_price > snapshot.historical_high * (1 - sensitivity)
            message = (
                f"high_price {snapshot.high_price:.2f} breaks "
                f"historical_high {snapshot.historical_high:.2f}"
            )
    elif field == ConditionField.LOW_PRICE and reference == ConditionReference.HISTORICAL_LOW:
        if snapshot.historical_low > 0:
            triggered = snapshot.low_price < snapshot.historical_low * (1 + sensitivity)
            message = (
                f"low_price {snapshot.low_price:.2f} breaks "
                f"historical_low {snapshot.historical_low:.2f}"
            )
    elif field == ConditionField.MA5 and reference == ConditionReference.MA20:
        triggered = snapshot.ma5 >= snapshot.ma20 * (1 - sensitivity)
        message = f"ma5 {snapshot.ma5:.2f} crosses above ma20 {snapshot.ma20:.2f}"

    return triggered, message


def evaluate(
    group: ConditionGroup,
    snapshot: MarketSnapshot,
    sensitivity: float,
) -> tuple[bool, str]:
    """조건 그룹 평가

    - AND: 모든 조건이 충족되어야 함 (첫 실패에서 중단), 첫 조건의 메시지 반환
    - OR: 하나 이상 충족 (첫 성공에서 중단), 그 조건의 메시지 반환

    Args:
        group: 조건 그룹
        snapshot: 종목 스냅샷
        sensitivity: 허용 오차 (== / != 및 상대 비교에 사용)

    Returns:
        (트리거 여부, 메시지). 트리거되지 않으면 마지막으로 평가한 조건의 메시지.
    """
    if not group.conditions:
        return False, "no conditions"

    if group.logic == LogicOperator.OR:
        message = ""
        for condition in group.conditions:
            triggered, message = evaluate_condition(condition, snapshot, sensitivity)
            if triggered:
                return True, message
        return False, message

    first_message = ""
    for index, condition in enumerate(group.conditions):
        triggered, message = evaluate_condition(condition, snapshot, sensitivity)
        if index == 0:
            first_message = message
        if not triggered:
            return False, message
    return True, first_message
