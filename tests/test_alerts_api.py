"""가격 알림 API 엔드포인트 테스트"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from conftest import FakeQuoteProvider, make_alert_payload
from fastapi.testclient import TestClient

from src.alerts.repository import InMemoryAlertRepository
from src.alerts.snapshot import Quote
from src.main import create_app

BASE = "/api/v1/price-alerts"


# ─────────────────── Fixtures ─────────────────────


@pytest.fixture
def quotes() -> FakeQuoteProvider:
    return FakeQuoteProvider({
        "005930": Quote(
            code="005930",
            name="삼성전자",
            price=74500,
            high=75000,
            low=70200,
            pre_close=70150,
            change_percent=6.2,
            volume_ratio=3.1,
        ),
    })


@pytest.fixture
def client(quotes: FakeQuoteProvider) -> Iterator[TestClient]:
    app = create_app(quotes, repository=InMemoryAlertRepository(), start_monitor=False)
    with TestClient(app) as c:
        yield c


def _create(client: TestClient, **overrides) -> dict:
    response = client.post(BASE, json=make_alert_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


# ─────────────────── CRUD ─────────────────────


class TestAlertCrud:
    """알림 생성/조회/수정/삭제"""

    def test_create_alert(self, client: TestClient) -> None:
        data = _create(client)

        assert data["id"] >= 1
        assert data["stock_code"] == "005930"
        assert data["is_active"] is True
        assert data["conditions"]["logic"] == "AND"
        assert data["conditions"]["conditions"][0]["field"] == "price_change_percent"
        assert data["post_trigger_action"] == "continue"
        assert data["last_triggered_at"] is None

    def test_create_with_bare_condition_array(self, client: TestClient) -> None:
        data = _create(
            client,
            conditions=[{"field": "close_price", "operator": "<=", "value": 60000}],
        )
        assert data["conditions"]["logic"] == "AND"
        assert data["conditions"]["conditions"][0]["value"] == 60000

    def test_create_with_json_string_conditions(self, client: TestClient) -> None:
        data = _create(
            client,
            conditions='{"logic": "OR", "conditions": [{"field": "ma5", "operator": ">", "value": 0, "reference": "ma20"}]}',
        )
        assert data["conditions"]["logic"] == "OR"
        assert data["conditions"]["conditions"][0]["reference"] == "ma20"

    @pytest.mark.parametrize(
        "conditions",
        [
            [],
            [{"field": "rsi", "operator": ">", "value": 70}],
            [{"field": "close_price", "operator": "=>", "value": 1}],
            "not json",
        ],
    )
    def test_create_invalid_conditions(self, client: TestClient, conditions) -> None:
        response = client.post(BASE, json=make_alert_payload(conditions=conditions))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"sensitivity": 0.5},
            {"cooldown_hours": 25},
            {"post_trigger_action": "forever"},
        ],
    )
    def test_create_out_of_range(self, client: TestClient, overrides: dict) -> None:
        response = client.post(BASE, json=make_alert_payload(**overrides))
        assert response.status_code == 422

    def test_list_and_filter(self, client: TestClient) -> None:
        samsung = _create(client)
        _create(client, stock_code="000660", stock_name="SK하이닉스")
        client.put(f"{BASE}/{samsung['id']}/toggle", json={"is_active": False})

        assert len(client.get(BASE).json()) == 2
        assert [a["stock_code"] for a in client.get(BASE, params={"active_only": True}).json()] == [
            "000660"
        ]
        by_code = client.get(BASE, params={"stock_code": "005930"}).json()
        assert [a["id"] for a in by_code] == [samsung["id"]]
        assert client.get(BASE, params={"stock_code": "005930", "active_only": True}).json() == []

    def test_get_alert(self, client: TestClient) -> None:
        created = _create(client)

        response = client.get(f"{BASE}/{created['id']}")

        assert response.status_code == 200
        assert response.json()["stock_name"] == "삼성전자"

    def test_get_missing_alert(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/999")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_invalid_id(self, client: TestClient) -> None:
        assert client.get(f"{BASE}/0").status_code == 422

    def test_update_alert(self, client: TestClient) -> None:
        created = _create(client)
        payload = make_alert_payload(
            stock_name="삼성전자우",
            conditions=[{"field": "volume_ratio", "operator": ">", "value": 2}],
            post_trigger_action="disable",
            is_active=False,
        )

        response = client.put(f"{BASE}/{created['id']}", json=payload)

        assert response.status_code == 200
        data = response.json()
        assert data["stock_name"] == "삼성전자우"
        assert data["is_active"] is False
        assert data["post_trigger_action"] == "disable"
        assert data["conditions"]["conditions"][0]["field"] == "volume_ratio"

    def test_update_missing_alert(self, client: TestClient) -> None:
        response = client.put(f"{BASE}/999", json=make_alert_payload())
        assert response.status_code == 404

    def test_delete_alert(self, client: TestClient) -> None:
        created = _create(client)

        response = client.delete(f"{BASE}/{created['id']}")

        assert response.status_code == 200
        assert client.get(f"{BASE}/{created['id']}").status_code == 404
        assert client.delete(f"{BASE}/{created['id']}").status_code == 404

    def test_toggle_alert(self, client: TestClient) -> None:
        created = _create(client)

        response = client.put(f"{BASE}/{created['id']}/toggle", json={"is_active": False})

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert client.get(f"{BASE}/{created['id']}").json()["is_active"] is False

    def test_toggle_missing_alert(self, client: TestClient) -> None:
        response = client.put(f"{BASE}/999/toggle", json={"is_active": True})
        assert response.status_code == 404


# ─────────────────── 템플릿 / 이력 ─────────────────────


class TestTemplates:
    """템플릿 조회 및 템플릿 기반 생성"""

    def test_default_templates_are_seeded(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/templates")

        assert response.status_code == 200
        ids = {t["id"] for t in response.json()}
        assert len(ids) == 8
        assert "template_volume_surge" in ids

    def test_instantiate_template(self, client: TestClient) -> None:
        response = client.post(
            f"{BASE}/templates/template_price_change_5/instantiate",
            json={"stock_code": "005930", "stock_name": "삼성전자", "params": {"value": 7}},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["template_id"] == "template_price_change_5"
        assert data["alert_type"] == "price_change"
        assert data["conditions"]["conditions"][0]["value"] == 7
        assert data["cooldown_hours"] == 1

        # 템플릿 자체는 그대로
        templates = {t["id"]: t for t in client.get(f"{BASE}/templates").json()}
        assert templates["template_price_change_5"]["conditions"]["conditions"][0]["value"] == 5

    def test_instantiate_unknown_template(self, client: TestClient) -> None:
        response = client.post(
            f"{BASE}/templates/missing/instantiate",
            json={"stock_code": "005930", "stock_name": "삼성전자"},
        )
        assert response.status_code == 404


class TestCheckAndHistory:
    """수동 체크와 트리거 이력"""

    def test_check_stock_triggers_and_records_history(self, client: TestClient) -> None:
        created = _create(client)

        response = client.post(f"{BASE}/check/005930")

        assert response.status_code == 200
        data = response.json()
        assert data["triggered_count"] == 1
        assert data["triggered_alerts"][0]["alert_id"] == created["id"]
        assert data["triggered_alerts"][0]["trigger_price"] == 74500

        history = client.get(f"{BASE}/history").json()
        assert len(history) == 1
        assert history[0]["trigger_message"] == "price_change_percent 6.20 > 5.00"
        assert client.get(f"{BASE}/{created['id']}").json()["last_triggered_at"] is not None

    def test_second_check_is_in_cooldown(self, client: TestClient) -> None:
        _create(client)

        client.post(f"{BASE}/check/005930")
        data = client.post(f"{BASE}/check/005930").json()

        assert data["triggered_count"] == 0
        assert data["triggered_alerts"] == []

    def test_check_quote_failure(self, client: TestClient, quotes: FakeQuoteProvider) -> None:
        _create(client)
        quotes.failing.add("005930")

        response = client.post(f"{BASE}/check/005930")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "DATA_UNAVAILABLE"

    def test_history_filter_and_limit(self, client: TestClient) -> None:
        assert client.get(f"{BASE}/history", params={"stock_code": "000660"}).json() == []
        assert client.get(f"{BASE}/history", params={"limit": 0}).status_code == 422


# ─────────────────── 감시 루프 ─────────────────────


class TestMonitorEndpoints:
    """감시 루프 제어"""

    def test_status(self, client: TestClient) -> None:
        data = client.get(f"{BASE}/monitor").json()

        assert data["is_running"] is False
        assert data["check_interval_seconds"] > 0
        assert data["next_run_time"] is None

    def test_start_stop(self, client: TestClient) -> None:
        started = client.post(f"{BASE}/monitor/start").json()
        assert started["is_running"] is True
        assert started["next_run_time"] is not None

        again = client.post(f"{BASE}/monitor/start")
        assert again.status_code == 200
        assert again.json()["is_running"] is True

        stopped = client.post(f"{BASE}/monitor/stop").json()
        assert stopped["is_running"] is False

    def test_set_interval(self, client: TestClient) -> None:
        response = client.put(f"{BASE}/monitor/interval", json={"seconds": 30})

        assert response.status_code == 200
        assert response.json()["check_interval_seconds"] == 30

    def test_invalid_interval(self, client: TestClient) -> None:
        assert client.put(f"{BASE}/monitor/interval", json={"seconds": 0}).status_code == 422
