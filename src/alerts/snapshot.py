"""
시장 스냅샷

실시간 시세(Quote)와 K선(Bar) 목록으로부터 알림 평가용
MarketSnapshot을 만듭니다. 스냅샷은 체크 주기마다 종목별로 새로 만들어지며
저장되지 않습니다.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class Quote:
    """실시간 시세"""

    code: str
    price: float
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    pre_close: float = 0.0
    change_percent: float = 0.0  # 등락률 (%)
    volume: int = 0
    volume_ratio: float = 0.0
    name: str = ""


@dataclass(frozen=True)
class Bar:
    """K선 한 개 (과거 → 최신 순으로 정렬되어 전달됨)"""

    close: float
    high: float
    low: float


@dataclass(frozen=True)
class MarketSnapshot:
    """알림 평가용 종목 스냅샷"""

    code: str
    name: str = ""
    close_price: float = 0.0
    open_price: float = 0.0
    high_price: float = 0.0
    low_price: float = 0.0
    pre_close_price: float = 0.0
    price_change_percent: float = 0.0
    volume: int = 0
    volume_ratio: float = 0.0
    ma5: float = 0.0
    ma10: float = 0.0
    ma20: float = 0.0
    historical_high: float = 0.0
    historical_low: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def calculate_ma(bars: Sequence[Bar], period: int) -> float:
    """최근 period개 종가의 단순이동평균 (데이터 부족 시 0)"""
    if period <= 0 or len(bars) < period:
        return 0.0
    closes = [bar.close for bar in bars[-period:]]
    return sum(closes) / period


def build_snapshot(quote: Quote, bars: Sequence[Bar] | None = None) -> MarketSnapshot:
    """시세와 K선으로 MarketSnapshot 생성

    K선이 없으면 이동평균과 역사적 고저가는 0으로 남습니다.

    Args:
        quote: 실시간 시세
        bars: 과거 → 최신 순 K선 목록 (None 허용)

    Returns:
        MarketSnapshot
    """
    bars = list(bars or [])

    historical_high = 0.0
    historical_low = 0.0
    if bars:
        historical_high = max(bar.high for bar in bars)
        historical_low = min(bar.low for bar in bars)

    return MarketSnapshot(
        code=quote.code,
        name=quote.name,
        close_price=quote.price,
        open_price=quote.open,
        high_price=quote.high,
        low_price=quote.low,
        pre_close_price=quote.pre_close,
        price_change_percent=quote.change_percent,
        volume=quote.volume,
        volume_ratio=quote.volume_ratio,
        ma5=calculate_ma(bars, 5),
        ma10=calculate_ma(bars, 10),
        ma20=calculate_ma(bars, 20),
        historical_high=historical_high,
        historical_low=historical_low,
    )
