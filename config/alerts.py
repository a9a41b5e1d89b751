"""
가격 알림(Price Alert) 설정

감시 루프 주기, K선 조회 범위, 템플릿 기본값 등
알림 엔진 동작에 필요한 파라미터를 환경변수로 관리합니다.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertSettings(BaseSettings):
    """알림 엔진 설정

    감시 루프:
    - 체크 주기 (초)
    - 종목별 시세 조회 동시성

    스냅샷:
    - 이동평균/역사적 고저가 계산용 K선 개수와 주기

    템플릿 기본값:
    - 템플릿으로 생성한 알림의 민감도/쿨다운/트리거 후 동작
    """

    # ── 감시 루프 ──
    check_interval_seconds: float = Field(default=10.0, gt=0)  # 체크 주기
    fetch_concurrency: int = Field(default=4, ge=1)            # 종목 조회 동시성

    # ── 스냅샷 ──
    kline_count: int = Field(default=100, ge=1)  # 조회할 K선 개수
    kline_period: str = "daily"                  # K선 주기

    # ── 알림 전파 ──
    broadcast_queue_size: int = Field(default=1000, ge=1)  # 구독자별 큐 크기

    # ── 템플릿 기본값 ──
    template_sensitivity: float = Field(default=0.001, ge=0, le=0.1)
    template_cooldown_hours: int = Field(default=1, ge=0, le=24)
    template_post_trigger_action: Literal["continue", "disable", "once"] = "continue"

    # ── 조회 ──
    history_limit: int = 50  # 트리거 이력 기본 조회 건수

    model_config = SettingsConfigDict(
        env_prefix="ALERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# 전역 알림 설정 인스턴스
alert_settings = AlertSettings()
