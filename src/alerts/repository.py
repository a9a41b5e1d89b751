"""
알림 저장소

AlertRepository 프로토콜과 두 가지 구현을 제공합니다.

- InMemoryAlertRepository: 프로세스 내 저장 (테스트/임베디드 용도)
- SQLAlchemyAlertRepository: DB 저장 (세션 팩토리 주입)

모든 메서드는 동기 호출이며, 감시 루프는 워커 스레드에서 호출합니다.
조회 결과는 항상 복사본이므로 호출 측이 수정해도 저장소 상태는 바뀌지 않습니다.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.alerts.models import AlertTemplate, PriceAlert, TriggerHistory
from src.exceptions import NotFoundError, RepositoryError, ValidationError
from src.models.schema import (
    PriceAlertTemplate,
    PriceAlertTriggerHistory,
    PriceThresholdAlert,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)


def as_utc(value: datetime | None) -> datetime | None:
    """naive datetime은 UTC로 간주"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_in_cooldown(
    last_triggered_at: datetime | None,
    cooldown_hours: int,
    now: datetime,
) -> bool:
    """마지막 트리거 이후 쿨다운 시간이 아직 지나지 않았는지 확인"""
    if last_triggered_at is None:
        return False
    elapsed = as_utc(now) - as_utc(last_triggered_at)
    return elapsed < timedelta(hours=cooldown_hours)


class AlertRepository(Protocol):
    """알림 저장소 계약"""

    def create_alert(self, alert: PriceAlert) -> PriceAlert: ...

    def get_alert(self, alert_id: int) -> PriceAlert | None: ...

    def list_alerts(self) -> list[PriceAlert]: ...

    def get_active_alerts(self) -> list[PriceAlert]: ...

    def get_alerts_by_stock_code(self, stock_code: str) -> list[PriceAlert]: ...

    def update_alert(self, alert: PriceAlert) -> PriceAlert: ...

    def delete_alert(self, alert_id: int) -> bool: ...

    def toggle_status(self, alert_id: int, is_active: bool) -> None: ...

    def update_last_triggered_time(self, alert_id: int, triggered_at: datetime) -> None: ...

    def is_in_cooldown(self, alert_id: int, cooldown_hours: int, now: datetime) -> bool: ...

    def save_trigger_history(self, history: TriggerHistory) -> TriggerHistory: ...

    def get_trigger_history(
        self, stock_code: str | None = None, limit: int = 50
    ) -> list[TriggerHistory]: ...

    def list_templates(self) -> list[AlertTemplate]: ...

    def get_template(self, template_id: str) -> AlertTemplate | None: ...

    def save_template(self, template: AlertTemplate) -> AlertTemplate: ...


# ───────────────────── In-Memory ─────────────────────


class InMemoryAlertRepository:
    """프로세스 내 알림 저장소"""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._alerts: dict[int, PriceAlert] = {}
        self._history: list[TriggerHistory] = []
        self._templates: dict[str, AlertTemplate] = {}
        self._alert_ids = itertools.count(1)
        self._history_ids = itertools.count(1)

    def create_alert(self, alert: PriceAlert) -> PriceAlert:
        now = self._clock()
        with self._lock:
            stored = alert.model_copy(
                deep=True,
                update={"id": next(self._alert_ids), "created_at": now, "updated_at": now},
            )
            self._alerts[stored.id] = stored
            return stored.model_copy(deep=True)

    def get_alert(self, alert_id: int) -> PriceAlert | None:
        with self._lock:
            alert = self._alerts.get(alert_id)
            return alert.model_copy(deep=True) if alert else None

    def list_alerts(self) -> list[PriceAlert]:
        with self._lock:
            alerts = sorted(self._alerts.values(), key=lambda a: a.id or 0, reverse=True)
            return [a.model_copy(deep=True) for a in alerts]

    def get_active_alerts(self) -> list[PriceAlert]:
        return [a for a in self.list_alerts() if a.is_active]

    def get_alerts_by_stock_code(self, stock_code: str) -> list[PriceAlert]:
        return [a for a in self.list_alerts() if a.stock_code == stock_code]

    def update_alert(self, alert: PriceAlert) -> PriceAlert:
        with self._lock:
            if alert.id not in self._alerts:
                raise NotFoundError(f"알림 ID {alert.id}를 찾을 수 없습니다.")
            stored = alert.model_copy(deep=True, update={"updated_at": self._clock()})
            self._alerts[alert.id] = stored
            return stored.model_copy(deep=True)

    def delete_alert(self, alert_id: int) -> bool:
        with self._lock:
            return self._alerts.pop(alert_id, None) is not None

    def toggle_status(self, alert_id: int, is_active: bool) -> None:
        self._patch(alert_id, is_active=is_active, updated_at=self._clock())

    def update_last_triggered_time(self, alert_id: int, triggered_at: datetime) -> None:
        self._patch(alert_id, last_triggered_at=triggered_at)

    def is_in_cooldown(self, alert_id: int, cooldown_hours: int, now: datetime) -> bool:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise NotFoundError(f"알림 ID {alert_id}를 찾을 수 없습니다.")
            return is_in_cooldown(alert.last_triggered_at, cooldown_hours, now)

    def save_trigger_history(self, history: TriggerHistory) -> TriggerHistory:
        with self._lock:
            stored = history.model_copy(update={"id": next(self._history_ids)})
            self._history.append(stored)
            return stored.model_copy()

    def get_trigger_history(
        self, stock_code: str | None = None, limit: int = 50
    ) -> list[TriggerHistory]:
        with self._lock:
            rows = [h for h in self._history if stock_code is None or h.stock_code == stock_code]
        rows.sort(key=lambda h: (h.triggered_at, h.id or 0), reverse=True)
        return [h.model_copy() for h in rows[:limit]]

    def list_templates(self) -> list[AlertTemplate]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._templates.values()]

    def get_template(self, template_id: str) -> AlertTemplate | None:
        with self._lock:
            template = self._templates.get(template_id)
            return template.model_copy(deep=True) if template else None

    def save_template(self, template: AlertTemplate) -> AlertTemplate:
        with self._lock:
            stored = template.model_copy(
                deep=True,
                update={"created_at": template.created_at or self._clock()},
            )
            self._templates[template.id] = stored
            return stored.model_copy(deep=True)

    def _patch(self, alert_id: int, **changes: object) -> None:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise NotFoundError(f"알림 ID {alert_id}를 찾을 수 없습니다.")
            self._alerts[alert_id] = alert.model_copy(update=changes)


# ───────────────────── SQLAlchemy ─────────────────────


def _to_alert(row: PriceThresholdAlert) -> PriceAlert:
    alert = PriceAlert.model_validate(row)
    return alert.model_copy(
        update={
            "last_triggered_at": as_utc(alert.last_triggered_at),
            "created_at": as_utc(alert.created_at),
            "updated_at": as_utc(alert.updated_at),
        }
    )


def _to_history(row: PriceAlertTriggerHistory) -> TriggerHistory:
    history = TriggerHistory.model_validate(row)
    return history.model_copy(update={"triggered_at": as_utc(history.triggered_at)})


class SQLAlchemyAlertRepository:
    """DB 기반 알림 저장소

    Usage::

        engine = build_engine()
        repo = SQLAlchemyAlertRepository(build_session_factory(engine))
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """
        Args:
            session_factory: DB 세션 팩토리
        """
        self._session_factory = session_factory

    @contextmanager
    def _session(self, op: str) -> Iterator[Session]:
        """세션을 열고 커밋하며, DB 오류는 RepositoryError로 변환"""
        with self._session_factory() as session:
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise RepositoryError(
                    f"알림 저장소 작업 실패: {op}",
                    detail={"operation": op, "reason": str(e)},
                ) from e

    # ── 알림 ──

    def create_alert(self, alert: PriceAlert) -> PriceAlert:
        with self._session("create_alert") as session:
            row = PriceThresholdAlert(
                stock_code=alert.stock_code,
                stock_name=alert.stock_name,
                alert_type=alert.alert_type,
                conditions=alert.conditions.to_json(),
                is_active=alert.is_active,
                sensitivity=alert.sensitivity,
                cooldown_hours=alert.cooldown_hours,
                post_trigger_action=alert.post_trigger_action.value,
                enable_sound=alert.enable_sound,
                enable_desktop=alert.enable_desktop,
                template_id=alert.template_id,
                last_triggered_at=alert.last_triggered_at,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            return _to_alert(row)

    def get_alert(self, alert_id: int) -> PriceAlert | None:
        with self._session("get_alert") as session:
            row = session.get(PriceThresholdAlert, alert_id)
            return _to_alert(row) if row else None

    def list_alerts(self) -> list[PriceAlert]:
        return self._select_alerts("list_alerts")

    def get_active_alerts(self) -> list[PriceAlert]:
        return self._select_alerts(
            "get_active_alerts",
            PriceThresholdAlert.is_active == True,  # noqa: E712
        )

    def get_alerts_by_stock_code(self, stock_code: str) -> list[PriceAlert]:
        return self._select_alerts(
            "get_alerts_by_stock_code",
            PriceThresholdAlert.stock_code == stock_code,
        )

    def update_alert(self, alert: PriceAlert) -> PriceAlert:
        with self._session("update_alert") as session:
            row = session.get(PriceThresholdAlert, alert.id)
            if row is None:
                raise NotFoundError(f"알림 ID {alert.id}를 찾을 수 없습니다.")
            row.stock_code = alert.stock_code
            row.stock_name = alert.stock_name
            row.alert_type = alert.alert_type
            row.conditions = alert.conditions.to_json()
            row.is_active = alert.is_active
            row.sensitivity = alert.sensitivity
            row.cooldown_hours = alert.cooldown_hours
            row.post_trigger_action = alert.post_trigger_action.value
            row.enable_sound = alert.enable_sound
            row.enable_desktop = alert.enable_desktop
            row.template_id = alert.template_id
            session.flush()
            session.refresh(row)
            return _to_alert(row)

    def delete_alert(self, alert_id: int) -> bool:
        with self._session("delete_alert") as session:
            result = session.execute(
                delete(PriceThresholdAlert).where(PriceThresholdAlert.id == alert_id)
            )
            return bool(result.rowcount)

    def toggle_status(self, alert_id: int, is_active: bool) -> None:
        self._update_alert_columns("toggle_status", alert_id, is_active=is_active)

    def update_last_triggered_time(self, alert_id: int, triggered_at: datetime) -> None:
        self._update_alert_columns(
            "update_last_triggered_time",
            alert_id,
            last_triggered_at=triggered_at,
        )

    def is_in_cooldown(self, alert_id: int, cooldown_hours: int, now: datetime) -> bool:
        with self._session("is_in_cooldown") as session:
            row = session.get(PriceThresholdAlert, alert_id)
            if row is None:
                raise NotFoundError(f"알림 ID {alert_id}를 찾을 수 없습니다.")
            return is_in_cooldown(row.last_triggered_at, cooldown_hours, now)

    # ── 트리거 이력 ──

    def save_trigger_history(self, history: TriggerHistory) -> TriggerHistory:
        with self._session("save_trigger_history") as session:
            row = PriceAlertTriggerHistory(
                alert_id=history.alert_id,
                stock_code=history.stock_code,
                stock_name=history.stock_name,
                alert_type=history.alert_type,
                trigger_price=history.trigger_price,
                trigger_message=history.trigger_message,
                triggered_at=history.triggered_at,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            return _to_history(row)

    def get_trigger_history(
        self, stock_code: str | None = None, limit: int = 50
    ) -> list[TriggerHistory]:
        stmt = select(PriceAlertTriggerHistory)
        if stock_code:
            stmt = stmt.where(PriceAlertTriggerHistory.stock_code == stock_code)
        stmt = stmt.order_by(
            PriceAlertTriggerHistory.triggered_at.desc(),
            PriceAlertTriggerHistory.id.desc(),
        ).limit(limit)
        with self._session("get_trigger_history") as session:
            return [_to_history(row) for row in session.execute(stmt).scalars().all()]

    # ── 템플릿 ──

    def list_templates(self) -> list[AlertTemplate]:
        stmt = select(PriceAlertTemplate).order_by(PriceAlertTemplate.created_at.asc())
        with self._session("list_templates") as session:
            return [
                AlertTemplate.model_validate(row)
                for row in session.execute(stmt).scalars().all()
            ]

    def get_template(self, template_id: str) -> AlertTemplate | None:
        with self._session("get_template") as session:
            row = session.get(PriceAlertTemplate, template_id)
            return AlertTemplate.model_validate(row) if row else None

    def save_template(self, template: AlertTemplate) -> AlertTemplate:
        with self._session("save_template") as session:
            row = session.get(PriceAlertTemplate, template.id)
            if row is None:
                row = PriceAlertTemplate(id=template.id)
                session.add(row)
            row.name = template.name
            row.description = template.description
            row.alert_type = template.alert_type
            row.conditions = template.conditions.to_json()
            session.flush()
            session.refresh(row)
            return AlertTemplate.model_validate(row)

    # ── 내부 ──

    def _select_alerts(self, op: str, *criteria: object) -> list[PriceAlert]:
        """알림 목록 조회 (조건 JSON 등이 손상된 행은 로그만 남기고 제외)"""
        stmt = select(PriceThresholdAlert).where(*criteria).order_by(
            PriceThresholdAlert.created_at.desc(),
            PriceThresholdAlert.id.desc(),
        )
        with self._session(op) as session:
            rows = session.execute(stmt).scalars().all()

        alerts: list[PriceAlert] = []
        for row in rows:
            try:
                alerts.append(_to_alert(row))
            except (ValidationError, PydanticValidationError) as e:
                logger.error(
                    "손상된 알림 행 제외: ID=%s (%s)",
                    row.id,
                    e,
                    extra={"alert_id": row.id, "stock_code": row.stock_code},
                )
        return alerts

    def _update_alert_columns(self, op: str, alert_id: int, **values: object) -> None:
        with self._session(op) as session:
            result = session.execute(
                update(PriceThresholdAlert)
                .where(PriceThresholdAlert.id == alert_id)
                .values(**values)
            )
            if not result.rowcount:
                raise NotFoundError(f"알림 ID {alert_id}를 찾을 수 없습니다.")
