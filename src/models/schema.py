"""
SQLAlchemy 데이터베이스 모델

가격 알림, 알림 템플릿, 트리거 이력 테이블 스키마를 정의합니다.
SQLAlchemy 2.0 Mapped Column 패턴을 사용합니다.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    """UTC 기준 현재 시각을 반환합니다."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """모든 모델의 베이스 클래스"""


class PriceThresholdAlert(Base):
    """가격 알림 테이블"""

    __tablename__ = "price_threshold_alerts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    stock_code: Mapped[str] = mapped_column(String(20), index=True)  # 종목 코드
    stock_name: Mapped[str] = mapped_column(String(100))  # 종목명
    alert_type: Mapped[str] = mapped_column(String(30))  # price_change, target_price, ...
    conditions: Mapped[str] = mapped_column(Text())  # ConditionGroup JSON
    is_active: Mapped[bool] = mapped_column(default=True, index=True)
    sensitivity: Mapped[float] = mapped_column(default=0.001)  # 허용 오차
    cooldown_hours: Mapped[int] = mapped_column(default=1)
    post_trigger_action: Mapped[str] = mapped_column(
        String(10),
        default="continue",
    )  # continue, disable, once
    enable_sound: Mapped[bool] = mapped_column(default=True)
    enable_desktop: Mapped[bool] = mapped_column(default=True)
    template_id: Mapped[str | None] = mapped_column(String(50))
    last_triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )


class PriceAlertTemplate(Base):
    """알림 템플릿 테이블"""

    __tablename__ = "price_alert_templates"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text())
    alert_type: Mapped[str] = mapped_column(String(30))
    conditions: Mapped[str] = mapped_column(Text())  # ConditionGroup JSON (배열 허용)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PriceAlertTriggerHistory(Base):
    """알림 트리거 이력 테이블 (추가 전용)"""

    __tablename__ = "price_alert_trigger_history"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    alert_id: Mapped[int] = mapped_column(index=True)
    stock_code: Mapped[str] = mapped_column(String(20), index=True)
    stock_name: Mapped[str] = mapped_column(String(100))
    alert_type: Mapped[str] = mapped_column(String(30))
    trigger_price: Mapped[float | None] = mapped_column()  # 트리거 시점 현재가
    trigger_message: Mapped[str | None] = mapped_column(Text())
    triggered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        index=True,
    )
