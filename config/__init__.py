"""
설정 패키지

환경변수 기반 설정을 구조화하여 관리합니다.
- settings: 앱/DB/Discord 기본 설정
- alerts: 가격 알림 엔진 설정 (감시 주기, K선 범위, 템플릿 기본값)
"""

from __future__ import annotations

from config.alerts import alert_settings
from config.settings import settings

__all__ = ["alert_settings", "settings"]
