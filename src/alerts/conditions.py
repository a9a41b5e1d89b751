"""
알림 조건 모델

단일 비교 조건(Condition)과 논리 결합 그룹(ConditionGroup)을 정의합니다.

저장 형식은 JSON이며 두 가지 형태를 모두 받아들입니다::

    {"logic": "OR", "conditions": [{"field": "volume_ratio", "operator": ">", "value": 2}]}
    [{"field": "price_change_percent", "operator": ">", "value": 5}]   # logic=AND

검증은 쓰기 시점(생성/수정/템플릿 적용)에만 수행합니다.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.exceptions import ValidationError


class ConditionField(str, Enum):
    """스냅샷에서 값을 꺼낼 수 있는 필드"""

    PRICE_CHANGE_PERCENT = "price_change_percent"  # 등락률 (%)
    CLOSE_PRICE = "close_price"  # 현재가(종가)
    HIGH_PRICE = "high_price"  # 고가
    LOW_PRICE = "low_price"  # 저가
    OPEN_PRICE = "open_price"  # 시가
    VOLUME_RATIO = "volume_ratio"  # 거래량 비율
    MA5 = "ma5"
    MA10 = "ma10"
    MA20 = "ma20"


class ComparisonOperator(str, Enum):
    """비교 연산자"""

    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    EQ = "=="
    NE = "!="


class ConditionReference(str, Enum):
    """상대 비교 기준값"""

    HISTORICAL_HIGH = "historical_high"
    HISTORICAL_LOW = "historical_low"
    MA5 = "ma5"
    MA10 = "ma10"
    MA20 = "ma20"


class LogicOperator(str, Enum):
    """조건 결합 방식"""

    AND = "AND"
    OR = "OR"


class Condition(BaseModel):
    """단일 비교 조건"""

    field: ConditionField
    operator: ComparisonOperator
    value: float = 0.0
    reference: ConditionReference | None = None

    @field_validator("reference", mode="before")
    @classmethod
    def _blank_reference(cls, v: Any) -> Any:
        # 빈 문자열은 기준값 없음으로 취급
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ConditionGroup(BaseModel):
    """논리 결합된 조건 목록"""

    logic: LogicOperator = LogicOperator.AND
    conditions: list[Condition] = Field(..., min_length=1)

    @field_validator("logic", mode="before")
    @classmethod
    def _normalize_logic(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return LogicOperator.AND
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def to_json(self) -> str:
        """저장용 JSON 문자열로 직렬화"""
        return self.model_dump_json(exclude_none=True)


def parse_condition_group(raw: str | bytes | dict | list | ConditionGroup) -> ConditionGroup:
    """조건 그룹 파싱 및 검증

    Args:
        raw: JSON 문자열, dict, 조건 list, 또는 ConditionGroup

    Returns:
        검증된 ConditionGroup (입력이 ConditionGroup이면 깊은 복사본)

    Raises:
        ValidationError: JSON 형식 오류 또는 조건 검증 실패
    """
    if isinstance(raw, ConditionGroup):
        return raw.model_copy(deep=True)

    data: Any = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(
                "알림 조건 JSON 형식이 올바르지 않습니다.",
                detail={"reason": str(e)},
            ) from e

    if isinstance(data, list):
        data = {"conditions": data}

    if not isinstance(data, dict):
        raise ValidationError(
            "알림 조건은 객체 또는 배열이어야 합니다.",
            detail={"type": type(data).__name__},
        )

    try:
        return ConditionGroup.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "알림 조건이 유효하지 않습니다.",
            detail={
                "errors": e.errors(
                    include_url=False,
                    include_context=False,
                    include_input=False,
                ),
            },
        ) from e
