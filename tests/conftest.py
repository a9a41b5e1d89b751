"""
테스트 공통 Fixture 정의

pytest conftest.py - 모든 테스트에서 공유하는 fixture들을 정의합니다.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from src.alerts.lifecycle import AlertLifecycleManager
from src.alerts.repository import InMemoryAlertRepository
from src.alerts.snapshot import Bar, MarketSnapshot, Quote

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)


class FakeClock:
    """수동으로 진행시키는 시계"""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeQuoteProvider:
    """종목별 시세를 미리 넣어 두는 시세 제공자"""

    def __init__(self, quotes: dict[str, Quote] | None = None) -> None:
        self.quotes: dict[str, Quote] = dict(quotes or {})
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def get_quote(self, code: str) -> Quote:
        self.calls.append(code)
        if code in self.failing or code not in self.quotes:
            raise ConnectionError(f"시세 조회 실패: {code}")
        return self.quotes[code]


class FakeHistoryProvider:
    """종목별 K선을 미리 넣어 두는 K선 제공자"""

    def __init__(self, bars: dict[str, list[Bar]] | None = None) -> None:
        self.bars: dict[str, list[Bar]] = dict(bars or {})
        self.calls: list[tuple[str, int, str]] = []

    def get_bars(self, code: str, count: int, period: str) -> list[Bar]:
        self.calls.append((code, count, period))
        if code not in self.bars:
            raise ConnectionError(f"K선 조회 실패: {code}")
        return self.bars[code]


def make_snapshot(**overrides: Any) -> MarketSnapshot:
    """기본값이 채워진 테스트용 스냅샷"""
    values: dict[str, Any] = {
        "code": "005930",
        "name": "삼성전자",
        "close_price": 70000.0,
        "open_price": 69500.0,
        "high_price": 70500.0,
        "low_price": 69000.0,
        "pre_close_price": 69800.0,
        "price_change_percent": 0.29,
        "volume": 1_000_000,
        "volume_ratio": 1.0,
        "ma5": 69800.0,
        "ma10": 69500.0,
        "ma20": 69000.0,
        "historical_high": 80000.0,
        "historical_low": 60000.0,
    }
    values.update(overrides)
    return MarketSnapshot(**values)


def make_alert_payload(**overrides: Any) -> dict[str, Any]:
    """알림 생성 요청 기본값"""
    payload: dict[str, Any] = {
        "stock_code": "005930",
        "stock_name": "삼성전자",
        "alert_type": "price_change",
        "conditions": {
            "logic": "AND",
            "conditions": [{"field": "price_change_percent", "operator": ">", "value": 5}],
        },
        "sensitivity": 0.001,
        "cooldown_hours": 1,
        "post_trigger_action": "continue",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository(clock: FakeClock) -> InMemoryAlertRepository:
    """인메모리 알림 저장소"""
    return InMemoryAlertRepository(clock=clock)


@pytest.fixture
def lifecycle(repository: InMemoryAlertRepository, clock: FakeClock) -> AlertLifecycleManager:
    """고정 시계를 쓰는 생명주기 매니저"""
    return AlertLifecycleManager(repository, clock=clock)
