"""
알림 생명주기 관리

알림 CRUD 검증, 쿨다운 게이트, 트리거 처리(이력 기록 → 마지막 트리거 시각 갱신
→ 트리거 후 동작 적용), 템플릿 기반 알림 생성을 담당합니다.

상태 전이::

    Armed ──트리거──▶ Cooling ──쿨다운 경과──▶ Armed
      │                  │
      └──────────────────┴──▶ Disabled (is_active=False)

is_active / last_triggered_at은 이 클래스만 변경합니다.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from config.alerts import alert_settings
from src.alerts.evaluator import evaluate
from src.alerts.models import (
    AlertCreateRequest,
    AlertTemplate,
    AlertUpdateRequest,
    PriceAlert,
    TriggerHistory,
)
from src.alerts.repository import AlertRepository
from src.alerts.snapshot import MarketSnapshot
from src.alerts.templates import apply_template_params
from src.exceptions import NotFoundError, ValidationError
from src.utils.logger import get_logger

logger = get_logger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)

MESSAGE_INACTIVE = "alert inactive"
MESSAGE_COOLDOWN = "in cooldown"


def _validate_request(model: type[RequestT], payload: RequestT | Mapping[str, Any]) -> RequestT:
    """요청 검증 (pydantic 오류는 앱 ValidationError로 변환)"""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            detail={
                "errors": e.errors(
                    include_url=False,
                    include_context=False,
                    include_input=False,
                ),
            },
        ) from e


def _require_valid_id(alert_id: int) -> None:
    if alert_id <= 0:
        raise ValidationError("알림 ID가 유효하지 않습니다.", detail={"alert_id": alert_id})


class AlertLifecycleManager:
    """알림 생명주기 매니저

    Args:
        repository: 알림 저장소
        clock: 현재 시각 함수 (테스트에서 고정 시각 주입)
    """

    def __init__(
        self,
        repository: AlertRepository,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def repository(self) -> AlertRepository:
        return self._repository

    def now(self) -> datetime:
        return self._clock()

    # ───────────────────── CRUD ─────────────────────

    def create_alert(self, payload: AlertCreateRequest | Mapping[str, Any]) -> PriceAlert:
        """알림 생성

        Raises:
            ValidationError: 필수 필드 누락, 조건 JSON 오류, 범위 초과 등
        """
        request = _validate_request(AlertCreateRequest, payload)
        alert = PriceAlert(**request.model_dump(), is_active=True)
        created = self._repository.create_alert(alert)
        logger.info(
            "가격 알림 생성: ID=%s, 종목=%s(%s), 유형=%s",
            created.id,
            created.stock_code,
            created.stock_name,
            created.alert_type,
            extra={"alert_id": created.id, "stock_code": created.stock_code},
        )
        return created

    def update_alert(
        self,
        alert_id: int,
        payload: AlertUpdateRequest | Mapping[str, Any],
    ) -> PriceAlert:
        """알림 수정 (전체 교체, 마지막 트리거 시각은 유지)"""
        _require_valid_id(alert_id)
        request = _validate_request(AlertUpdateRequest, payload)
        existing = self.get_alert(alert_id)

        changes = request.model_dump(exclude={"conditions"})
        changes["conditions"] = request.conditions.model_copy(deep=True)
        updated = existing.model_copy(update=changes)
        saved = self._repository.update_alert(updated)
        logger.info(
            "가격 알림 수정: ID=%s, 종목=%s, 활성=%s",
            saved.id,
            saved.stock_code,
            saved.is_active,
            extra={"alert_id": saved.id, "stock_code": saved.stock_code},
        )
        return saved

    def delete_alert(self, alert_id: int) -> None:
        """알림 삭제 (트리거 이력은 남김)"""
        _require_valid_id(alert_id)
        if not self._repository.delete_alert(alert_id):
            raise NotFoundError(f"알림 ID {alert_id}를 찾을 수 없습니다.")
        logger.info("가격 알림 삭제: ID=%s", alert_id, extra={"alert_id": alert_id})

    def toggle_alert_status(self, alert_id: int, is_active: bool) -> PriceAlert:
        """알림 활성/비활성 전환"""
        _require_valid_id(alert_id)
        self._repository.toggle_status(alert_id, is_active)
        logger.info(
            "가격 알림 상태 변경: ID=%s, 활성=%s",
            alert_id,
            is_active,
            extra={"alert_id": alert_id},
        )
        return self.get_alert(alert_id)

    def get_alert(self, alert_id: int) -> PriceAlert:
        alert = self._repository.get_alert(alert_id)
        if alert is None:
            raise NotFoundError(f"알림 ID {alert_id}를 찾을 수 없습니다.")
        return alert

    def list_alerts(self) -> list[PriceAlert]:
        return self._repository.list_alerts()

    def get_active_alerts(self) -> list[PriceAlert]:
        return self._repository.get_active_alerts()

    def get_alerts_by_stock_code(self, stock_code: str) -> list[PriceAlert]:
        return self._repository.get_alerts_by_stock_code(stock_code)

    def get_trigger_history(
        self,
        stock_code: str | None = None,
        limit: int | None = None,
    ) -> list[TriggerHistory]:
        """트리거 이력 조회 (최신순)"""
        if limit is None:
            limit = alert_settings.history_limit
        if limit <= 0:
            raise ValidationError("조회 건수는 1 이상이어야 합니다.", detail={"limit": limit})
        return self._repository.get_trigger_history(stock_code or None, limit)

    # ───────────────────── Templates ─────────────────────

    def list_templates(self) -> list[AlertTemplate]:
        return self._repository.list_templates()

    def get_template(self, template_id: str) -> AlertTemplate:
        template = self._repository.get_template(template_id)
        if template is None:
            raise NotFoundError(f"알림 템플릿 '{template_id}'을(를) 찾을 수 없습니다.")
        return template

    def create_alert_from_template(
        self,
        template_id: str,
        stock_code: str,
        stock_name: str,
        params: Mapping[str, Any] | None = None,
    ) -> PriceAlert:
        """템플릿으로 알림 생성

        템플릿 조건을 복사해 파라미터를 적용한 뒤 일반 생성 경로로 검증/저장합니다.
        템플릿 자체는 변경되지 않습니다.

        Args:
            template_id: 템플릿 ID
            stock_code: 종목 코드
            stock_name: 종목명
            params: 조건 값 파라미터 (필드명 키 또는 범용 "value" 키)
        """
        template = self.get_template(template_id)
        conditions = apply_template_params(template.conditions, params)

        alert = self.create_alert(
            {
                "stock_code": stock_code,
                "stock_name": stock_name,
                "alert_type": template.alert_type,
                "conditions": conditions,
                "sensitivity": alert_settings.template_sensitivity,
                "cooldown_hours": alert_settings.template_cooldown_hours,
                "post_trigger_action": alert_settings.template_post_trigger_action,
                "enable_sound": True,
                "enable_desktop": True,
                "template_id": template.id,
            }
        )
        logger.info(
            "템플릿으로 알림 생성: 템플릿=%s, 알림 ID=%s",
            template.id,
            alert.id,
            extra={"template_id": template.id, "alert_id": alert.id},
        )
        return alert

    # ───────────────────── Check / Trigger ─────────────────────

    def check_alert(
        self,
        alert: PriceAlert,
        snapshot: MarketSnapshot,
        now: datetime | None = None,
    ) -> tuple[bool, str]:
        """쿨다운 확인 후 조건 평가

        쿨다운 중이면 평가하지 않습니다. 저장소 오류는 호출 측으로 전파됩니다.

        Returns:
            (트리거 여부, 메시지)
        """
        if not alert.is_active:
            return False, MESSAGE_INACTIVE

        now = now or self._clock()
        if self._repository.is_in_cooldown(alert.id, alert.cooldown_hours, now):
            logger.debug(
                "쿨다운 중 — 평가 생략: ID=%s",
                alert.id,
                extra={"alert_id": alert.id},
            )
            return False, MESSAGE_COOLDOWN

        return evaluate(alert.conditions, snapshot, alert.sensitivity)

    def trigger_alert(
        self,
        alert: PriceAlert,
        snapshot: MarketSnapshot,
        message: str,
        now: datetime | None = None,
    ) -> datetime:
        """알림 트리거 처리

        1. 트리거 이력 기록
        2. 마지막 트리거 시각 갱신
        3. 트리거 후 동작 적용 (disable/once → 비활성화)

        각 단계는 독립적인 쓰기입니다. 한 단계가 실패해도 로그만 남기고
        나머지 단계를 계속 진행합니다.

        Returns:
            트리거 시각
        """
        now = now or self._clock()
        context = {"alert_id": alert.id, "stock_code": alert.stock_code}

        try:
            self._repository.save_trigger_history(
                TriggerHistory(
                    alert_id=alert.id,
                    stock_code=alert.stock_code,
                    stock_name=alert.stock_name,
                    alert_type=alert.alert_type,
                    trigger_price=snapshot.close_price,
                    trigger_message=message,
                    triggered_at=now,
                )
            )
        except Exception:
            logger.exception("트리거 이력 저장 실패: ID=%s", alert.id, extra=context)

        try:
            self._repository.update_last_triggered_time(alert.id, now)
        except Exception:
            logger.exception("마지막 트리거 시각 갱신 실패: ID=%s", alert.id, extra=context)

        if alert.post_trigger_action.disables_alert:
            try:
                self._repository.toggle_status(alert.id, False)
                logger.info(
                    "트리거 후 알림 비활성화: ID=%s, 동작=%s",
                    alert.id,
                    alert.post_trigger_action.value,
                    extra=context,
                )
            except Exception:
                logger.exception("트리거 후 비활성화 실패: ID=%s", alert.id, extra=context)

        logger.info(
            "가격 알림 트리거: ID=%s, 종목=%s(%s), 가격=%s, 메시지=%s",
            alert.id,
            alert.stock_code,
            alert.stock_name,
            snapshot.close_price,
            message,
            extra=context,
        )
        return now
