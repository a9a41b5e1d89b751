"""
가격 알림 엔진 패키지

조건 모델, 스냅샷, 조건 평가기, 생명주기 매니저, 감시 루프, 템플릿, 저장소를 제공합니다.
"""

from __future__ import annotations

__all__ = [
    "AlertCreateRequest",
    "AlertLifecycleManager",
    "AlertMonitor",
    "AlertRepository",
    "AlertTemplate",
    "AlertUpdateRequest",
    "Bar",
    "ComparisonOperator",
    "Condition",
    "ConditionField",
    "ConditionGroup",
    "ConditionReference",
    "HistoryProvider",
    "InMemoryAlertRepository",
    "LogicOperator",
    "MarketSnapshot",
    "PostTriggerAction",
    "PriceAlert",
    "Quote",
    "QuoteProvider",
    "SQLAlchemyAlertRepository",
    "TriggerHistory",
    "apply_template_params",
    "build_snapshot",
    "evaluate",
    "parse_condition_group",
    "seed_default_templates",
]

from src.alerts.conditions import (
    ComparisonOperator,
    Condition,
    ConditionField,
    ConditionGroup,
    ConditionReference,
    LogicOperator,
    parse_condition_group,
)
from src.alerts.evaluator import evaluate
from src.alerts.lifecycle import AlertLifecycleManager
from src.alerts.models import (
    AlertCreateRequest,
    AlertTemplate,
    AlertUpdateRequest,
    PostTriggerAction,
    PriceAlert,
    TriggerHistory,
)
from src.alerts.monitor import AlertMonitor
from src.alerts.providers import HistoryProvider, QuoteProvider
from src.alerts.repository import (
    AlertRepository,
    InMemoryAlertRepository,
    SQLAlchemyAlertRepository,
)
from src.alerts.snapshot import Bar, MarketSnapshot, Quote, build_snapshot
from src.alerts.templates import apply_template_params, seed_default_templates
