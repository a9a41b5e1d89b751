"""AlertLifecycleManager 테스트"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from conftest import FakeClock, make_alert_payload, make_snapshot

from src.alerts.lifecycle import MESSAGE_COOLDOWN, AlertLifecycleManager
from src.alerts.models import PostTriggerAction
from src.alerts.repository import InMemoryAlertRepository
from src.alerts.templates import seed_default_templates
from src.exceptions import NotFoundError, RepositoryError, ValidationError


# ───────────────── 생성 / 검증 ─────────────────


class TestCreateAlert:
    """알림 생성 및 검증"""

    def test_create_alert(self, lifecycle: AlertLifecycleManager) -> None:
        alert = lifecycle.create_alert(make_alert_payload())

        assert alert.id == 1
        assert alert.is_active is True
        assert alert.post_trigger_action == PostTriggerAction.CONTINUE
        assert alert.last_triggered_at is None
        assert alert.created_at is not None

    def test_accepts_condition_json_string(self, lifecycle: AlertLifecycleManager) -> None:
        alert = lifecycle.create_alert(
            make_alert_payload(conditions='[{"field": "close_price", "operator": "<=", "value": 65000}]')
        )
        assert alert.conditions.conditions[0].value == 65000.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"stock_code": ""},
            {"stock_name": "   "},
            {"alert_type": ""},
            {"conditions": "{broken"},
            {"conditions": "[]"},
            {"sensitivity": -0.01},
            {"sensitivity": 0.2},
            {"cooldown_hours": -1},
            {"cooldown_hours": 25},
            {"post_trigger_action": "pause"},
        ],
    )
    def test_invalid_payload_is_rejected_before_persistence(self, overrides: dict) -> None:
        repo = MagicMock()
        manager = AlertLifecycleManager(repo)

        with pytest.raises(ValidationError):
            manager.create_alert(make_alert_payload(**overrides))

        repo.create_alert.assert_not_called()

    def test_boundary_values_are_accepted(self, lifecycle: AlertLifecycleManager) -> None:
        low = lifecycle.create_alert(make_alert_payload(sensitivity=0, cooldown_hours=0))
        high = lifecycle.create_alert(make_alert_payload(sensitivity=0.1, cooldown_hours=24))

        assert low.sensitivity == 0
        assert high.cooldown_hours == 24


# ───────────────── 수정 / 삭제 / 상태 ─────────────────


class TestUpdateDeleteToggle:
    """수정/삭제/상태 변경"""

    def test_update_keeps_last_triggered_time(
        self, lifecycle: AlertLifecycleManager, clock: FakeClock
    ) -> None:
        alert = lifecycle.create_alert(make_alert_payload())
        lifecycle.trigger_alert(alert, make_snapshot(), "fired")

        updated = lifecycle.update_alert(
            alert.id,
            make_alert_payload(stock_name="삼성전자우", cooldown_hours=3, is_active=False),
        )

        assert updated.stock_name == "삼성전자우"
        assert updated.cooldown_hours == 3
        assert updated.is_active is False
        assert updated.last_triggered_at == clock.now

    def test_update_invalid_id(self, lifecycle: AlertLifecycleManager) -> None:
        with pytest.raises(ValidationError):
            lifecycle.update_alert(0, make_alert_payload())

    def test_update_unknown_id(self, lifecycle: AlertLifecycleManager) -> None:
        with pytest.raises(NotFoundError):
            lifecycle.update_alert(99, make_alert_payload())

    def test_update_rejects_bad_conditions(self, lifecycle: AlertLifecycleManager) -> None:
        alert = lifecycle.create_alert(make_alert_payload())
        with pytest.raises(ValidationError):
            lifecycle.update_alert(alert.id, make_alert_payload(conditions="not json"))

    def test_delete_alert(self, lifecycle: AlertLifecycleManager) -> None:
        alert = lifecycle.create_alert(make_alert_payload())

        lifecycle.delete_alert(alert.id)

        with pytest.raises(NotFoundError):
            lifecycle.get_alert(alert.id)
        with pytest.raises(NotFoundError):
            lifecycle.delete_alert(alert.id)

    def test_delete_invalid_id(self, lifecycle: AlertLifecycleManager) -> None:
        with pytest.raises(ValidationError):
            lifecycle.delete_alert(-1)

    def test_toggle_alert_status(self, lifecycle: AlertLifecycleManager) -> None:
        alert = lifecycle.create_alert(make_alert_payload())

        disabled = lifecycle.toggle_alert_status(alert.id, False)
        assert disabled.is_active is False
        assert lifecycle.get_active_alerts() == []

        enabled = lifecycle.toggle_alert_status(alert.id, True)
        assert enabled.is_active is True

    def test_toggle_unknown_id(self, lifecycle: AlertLifecycleManager) -> None:
        with pytest.raises(NotFoundError):
            lifecycle.toggle_alert_status(42, True)

    def test_alerts_by_stock_code(self, lifecycle: AlertLifecycleManager) -> None:
        lifecycle.create_alert(make_alert_payload())
        lifecycle.create_alert(make_alert_payload(stock_code="000660", stock_name="SK하이닉스"))

        alerts = lifecycle.get_alerts_by_stock_code("000660")

        assert [a.stock_name for a in alerts] == ["SK하이닉스"]
        assert len(lifecycle.list_alerts()) == 2


# ───────────────── 쿨다운 ─────────────────


class TestCooldown:
    """쿨다운 게이트"""

    def test_cooldown_blocks_then_releases(
        self, lifecycle: AlertLifecycleManager, clock: FakeClock
    ) -> None:
        alert = lifecycle.create_alert(make_alert_payload(cooldown_hours=1))
        snapshot = make_snapshot(price_change_percent=6.2)
        t0 = clock.now

        fired, message = lifecycle.check_alert(alert, snapshot, t0)
        assert fired is True
        lifecycle.trigger_alert(alert, snapshot, message, t0)

        assert lifecycle.check_alert(alert, snapshot, t0 + timedelta(minutes=30)) == (
            False,
            MESSAGE_COOLDOWN,
        )
        fired, _ = lifecycle.check_alert(alert, snapshot, t0 + timedelta(minutes=61))
        assert fired is True

    @pytest.mark.parametrize("cooldown_hours", [2, 5, 24])
    def test_cooldown_boundaries(
        self, lifecycle: AlertLifecycleManager, clock: FakeClock, cooldown_hours: int
    ) -> None:
        alert = lifecycle.create_alert(make_alert_payload(cooldown_hours=cooldown_hours))
        snapshot = make_snapshot(price_change_percent=6.2)
        lifecycle.trigger_alert(alert, snapshot, "fired", clock.now)

        inside = clock.now + timedelta(hours=cooldown_hours - 1)
        outside = clock.now + timedelta(hours=cooldown_hours + 1)

        assert lifecycle.check_alert(alert, snapshot, inside)[1] == MESSAGE_COOLDOWN
        assert lifecycle.check_alert(alert, snapshot, outside)[0] is True

    def test_zero_cooldown_never_blocks(
        self, lifecycle: AlertLifecycleManager, clock: FakeClock
    ) -> None:
        alert = lifecycle.create_alert(make_alert_payload(cooldown_hours=0))
        snapshot = make_snapshot(price_change_percent=6.2)
        lifecycle.trigger_alert(alert, snapshot, "fired", clock.now)

        assert lifecycle.check_alert(alert, snapshot, clock.now)[0] is True

    def test_cooldown_repository_error_propagates(self, clock: FakeClock) -> None:
        repo = MagicMock()
        repo.is_in_cooldown.side_effect = RepositoryError("DB 오류")
        manager = AlertLifecycleManager(repo, clock=clock)
        alert = AlertLifecycleManager(InMemoryAlertRepository()).create_alert(make_alert_payload())

        with pytest.raises(RepositoryError):
            manager.check_alert(alert, make_snapshot(price_change_percent=6.2))

    def test_inactive_alert_is_not_evaluated(self, lifecycle: AlertLifecycleManager) -> None:
        alert = lifecycle.create_alert(make_alert_payload())
        alert = lifecycle.toggle_alert_status(alert.id, False)

        fired, _ = lifecycle.check_alert(alert, make_snapshot(price_change_percent=10))
        assert fired is False


# ───────────────── 트리거 처리 ─────────────────


class TestTriggerAlert:
    """트리거 처리 (이력 → 마지막 트리거 시각 → 트리거 후 동작)"""

    def test_trigger_writes_history_and_timestamp(
        self, lifecycle: AlertLifecycleManager, clock: FakeClock
    ) -> None:
        alert = lifecycle.create_alert(make_alert_payload())
        snapshot = make_snapshot(close_price=74500, price_change_percent=6.2)

        lifecycle.trigger_alert(alert, snapshot, "price_change_percent 6.20 > 5.00")

        history = lifecycle.get_trigger_history()
        assert len(history) == 1
        assert history[0].alert_id == alert.id
        assert history[0].trigger_price == 74500
        assert history[0].trigger_message == "price_change_percent 6.20 > 5.00"
        assert history[0].triggered_at == clock.now
        assert lifecycle.get_alert(alert.id).last_triggered_at == clock.now
        assert lifecycle.get_alert(alert.id).is_active is True

    @pytest.mark.parametrize("action", ["disable", "once"])
    def test_disabling_actions_deactivate_alert(
        self, lifecycle: AlertLifecycleManager, action: str
    ) -> None:
        alert = lifecycle.create_alert(make_alert_payload(post_trigger_action=action))

        lifecycle.trigger_alert(alert, make_snapshot(), "fired")

        assert lifecycle.get_alert(alert.id).is_active is False
        assert lifecycle.get_active_alerts() == []

    def test_history_failure_does_not_block_timestamp_or_disable(self, clock: FakeClock) -> None:
        repo = InMemoryAlertRepository(clock=clock)
        manager = AlertLifecycleManager(repo, clock=clock)
        alert = manager.create_alert(make_alert_payload(post_trigger_action="once"))
        repo.save_trigger_history = MagicMock(side_effect=RepositoryError("쓰기 실패"))

        triggered_at = manager.trigger_alert(alert, make_snapshot(), "fired")

        stored = manager.get_alert(alert.id)
        assert triggered_at == clock.now
        assert stored.last_triggered_at == clock.now
        assert stored.is_active is False

    def test_timestamp_failure_does_not_block_history(self, clock: FakeClock) -> None:
        repo = InMemoryAlertRepository(clock=clock)
        manager = AlertLifecycleManager(repo, clock=clock)
        alert = manager.create_alert(make_alert_payload())
        repo.update_last_triggered_time = MagicMock(side_effect=RepositoryError("쓰기 실패"))

        manager.trigger_alert(alert, make_snapshot(), "fired")

        assert len(manager.get_trigger_history()) == 1
        assert manager.get_alert(alert.id).last_triggered_at is None

    def test_history_is_newest_first_and_filtered(
        self, lifecycle: AlertLifecycleManager, clock: FakeClock
    ) -> None:
        a = lifecycle.create_alert(make_alert_payload())
        b = lifecycle.create_alert(make_alert_payload(stock_code="000660", stock_name="SK하이닉스"))

        lifecycle.trigger_alert(a, make_snapshot(), "first")
        clock.advance(minutes=5)
        lifecycle.trigger_alert(b, make_snapshot(code="000660"), "second")
        clock.advance(minutes=5)
        lifecycle.trigger_alert(a, make_snapshot(), "third")

        assert [h.trigger_message for h in lifecycle.get_trigger_history()] == [
            "third",
            "second",
            "first",
        ]
        assert [h.trigger_message for h in lifecycle.get_trigger_history("005930", 1)] == ["third"]

    def test_history_limit_must_be_positive(self, lifecycle: AlertLifecycleManager) -> None:
        with pytest.raises(ValidationError):
            lifecycle.get_trigger_history(limit=0)


# ───────────────── 템플릿 ─────────────────


class TestCreateFromTemplate:
    """템플릿 기반 생성"""

    def test_create_from_template_applies_params(
        self, lifecycle: AlertLifecycleManager, repository: InMemoryAlertRepository
    ) -> None:
        seed_default_templates(repository)

        alert = lifecycle.create_alert_from_template(
            "template_target_price", "005930", "삼성전자", {"close_price": 80000}
        )

        assert alert.alert_type == "target_price"
        assert alert.template_id == "template_target_price"
        assert alert.conditions.conditions[0].value == 80000.0
        assert alert.sensitivity == 0.001
        assert alert.cooldown_hours == 1
        assert alert.post_trigger_action == PostTriggerAction.CONTINUE
        assert alert.enable_sound is True
        assert alert.enable_desktop is True

        # 템플릿 자체는 변경되지 않음
        template = lifecycle.get_template("template_target_price")
        assert template.conditions.conditions[0].value == 0.0

    def test_unknown_template(self, lifecycle: AlertLifecycleManager) -> None:
        with pytest.raises(NotFoundError):
            lifecycle.create_alert_from_template("nope", "005930", "삼성전자", {})

    def test_template_goes_through_validation(
        self, lifecycle: AlertLifecycleManager, repository: InMemoryAlertRepository
    ) -> None:
        seed_default_templates(repository)

        with pytest.raises(ValidationError):
            lifecycle.create_alert_from_template("template_volume_surge", "", "삼성전자")
