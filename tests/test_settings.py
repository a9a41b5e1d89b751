"""
Settings / AlertSettings 테스트

환경변수 기반 설정의 기본값과 커스텀 값 적용을 검증합니다.
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from config.alerts import AlertSettings
from config.settings import Settings


class TestSettingsDefaults:
    """Settings 기본값 테스트"""

    def test_default_app_env(self):
        """기본 앱 환경이 development인지 확인"""
        with patch.dict(os.environ, {}, clear=True):
            s = Settings(_env_file=None)
        assert s.app_env == "development"

    def test_default_log_level(self):
        """기본 로그 레벨이 INFO인지 확인"""
        with patch.dict(os.environ, {}, clear=True):
            s = Settings(_env_file=None)
        assert s.log_level == "INFO"

    def test_default_database_url(self):
        """기본 데이터베이스 URL 형식 확인"""
        with patch.dict(os.environ, {}, clear=True):
            s = Settings(_env_file=None)
        assert s.database_url.startswith("sqlite:///")

    def test_default_discord_webhook_is_empty(self):
        with patch.dict(os.environ, {}, clear=True):
            s = Settings(_env_file=None)
        assert s.discord_webhook_url == ""


class TestSettingsCustom:
    """Settings 커스텀 값 테스트"""

    def test_custom_values(self):
        s = Settings(_env_file=None, app_env="production", log_level="DEBUG")
        assert s.app_env == "production"
        assert s.log_level == "DEBUG"

    def test_env_override(self):
        env = {"DATABASE_URL": "sqlite:///:memory:", "APP_ENV": "test"}
        with patch.dict(os.environ, env, clear=False):
            s = Settings(_env_file=None)
        assert s.database_url == "sqlite:///:memory:"
        assert s.app_env == "test"


class TestAlertSettings:
    """알림 엔진 설정 테스트"""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            s = AlertSettings(_env_file=None)
        assert s.check_interval_seconds == 10.0
        assert s.fetch_concurrency == 4
        assert s.kline_count == 100
        assert s.kline_period == "daily"
        assert s.broadcast_queue_size == 1000
        assert s.template_sensitivity == 0.001
        assert s.template_cooldown_hours == 1
        assert s.template_post_trigger_action == "continue"
        assert s.history_limit == 50

    def test_env_override(self) -> None:
        """ALERT_ 접두사 환경변수로 값 오버라이드"""
        env = {
            "ALERT_CHECK_INTERVAL_SECONDS": "2.5",
            "ALERT_KLINE_COUNT": "60",
            "ALERT_FETCH_CONCURRENCY": "8",
        }
        with patch.dict(os.environ, env, clear=False):
            s = AlertSettings(_env_file=None)
        assert s.check_interval_seconds == 2.5
        assert s.kline_count == 60
        assert s.fetch_concurrency == 8

    @pytest.mark.parametrize(
        "field,value",
        [
            ("check_interval_seconds", 0),
            ("fetch_concurrency", 0),
            ("kline_count", 0),
            ("template_sensitivity", 0.5),
            ("template_cooldown_hours", 25),
            ("template_post_trigger_action", "forever"),
        ],
    )
    def test_invalid_values(self, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            AlertSettings(_env_file=None, **{field: value})

    def test_invalid_template_env_fails_at_load(self) -> None:
        """잘못된 템플릿 기본값 환경변수는 로드 시점에 실패"""
        env = {"ALERT_TEMPLATE_POST_TRIGGER_ACTION": "forever"}
        with patch.dict(os.environ, env, clear=False):
            with pytest.raises(ValidationError):
                AlertSettings(_env_file=None)
