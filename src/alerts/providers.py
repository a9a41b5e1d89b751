"""
시세 데이터 제공자 계약

감시 루프는 데이터를 직접 가져오지 않고 주입된 제공자를 호출합니다.
구현체는 동기 함수이며, 실패 시 예외를 던지면 됩니다.
"""

from __future__ import annotations

from typing import Protocol

from src.alerts.snapshot import Bar, Quote


class QuoteProvider(Protocol):
    """실시간 시세 제공자"""

    def get_quote(self, code: str) -> Quote:
        """종목 현재 시세 조회"""
        ...


class HistoryProvider(Protocol):
    """K선 제공자"""

    def get_bars(self, code: str, count: int, period: str) -> list[Bar]:
        """최근 count개 K선 조회 (과거 → 최신 순)"""
        ...
