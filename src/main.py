"""
FastAPI 애플리케이션 팩토리

시세/K선 제공자를 주입받아 알림 저장소, 생명주기 매니저, 감시 루프를 구성합니다.
모듈 전역 인스턴스는 두지 않습니다::

    app = create_app(quote_provider=MyQuoteProvider(), history_provider=MyKLineProvider())
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config.settings import settings
from src.alerts.lifecycle import AlertLifecycleManager
from src.alerts.monitor import AlertMonitor
from src.alerts.providers import HistoryProvider, QuoteProvider
from src.alerts.repository import AlertRepository, SQLAlchemyAlertRepository
from src.alerts.templates import seed_default_templates
from src.api.alerts import router as price_alerts_router
from src.api.health import APP_VERSION
from src.api.health import router as health_router
from src.db import build_engine, build_session_factory, create_tables
from src.exceptions import register_exception_handlers
from src.notification.broadcaster import AlertBroadcaster
from src.notification.discord_notifier import DiscordNotifier
from src.utils.logger import get_logger

logger = get_logger(__name__)


OPENAPI_TAGS = [
    {
        "name": "System",
        "description": "시스템 상태 확인",
    },
    {
        "name": "PriceAlerts",
        "description": "가격 알림 — 조건 알림 관리, 템플릿, 트리거 이력, 감시 루프 제어",
    },
]


def create_app(
    quote_provider: QuoteProvider,
    history_provider: HistoryProvider | None = None,
    *,
    repository: AlertRepository | None = None,
    database_url: str | None = None,
    broadcaster: AlertBroadcaster | None = None,
    start_monitor: bool = True,
) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        quote_provider: 실시간 시세 제공자
        history_provider: K선 제공자 (없으면 이동평균/역사적 고저가 조건은 0 기준)
        repository: 알림 저장소 (없으면 DB 저장소 생성)
        database_url: DB URL (없으면 settings.database_url)
        broadcaster: 알림 옵저버 채널 (없으면 새로 생성)
        start_monitor: 앱 시작 시 감시 루프 자동 시작 여부

    Returns:
        FastAPI 앱
    """
    engine = None
    if repository is None:
        engine = build_engine(database_url)
        create_tables(engine)
        repository = SQLAlchemyAlertRepository(build_session_factory(engine))

    lifecycle = AlertLifecycleManager(repository)
    broadcaster = broadcaster or AlertBroadcaster()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """애플리케이션 시작/종료 시 실행되는 로직"""
        # Startup
        logger.info("🚀 Price Alert Monitor 시작 (환경: %s)", settings.app_env)
        seed_default_templates(repository)

        # APScheduler가 FastAPI 메인 이벤트 루프에 붙도록 루프 객체를 주입
        monitor = AlertMonitor(
            lifecycle,
            quote_provider,
            history_provider,
            broadcaster=broadcaster,
            event_loop=asyncio.get_running_loop(),
        )
        if settings.discord_webhook_url:
            monitor.set_alert_trigger_callback(DiscordNotifier().send_alert)
        app.state.monitor = monitor

        runner: asyncio.Task[None] | None = None
        if start_monitor:
            runner = asyncio.create_task(monitor.run_forever())

        yield

        # Shutdown
        if runner is not None:
            runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await runner
        monitor.stop()
        await monitor.drain_callbacks()
        if engine is not None:
            engine.dispose()
        logger.info("👋 Price Alert Monitor 종료")

    app = FastAPI(
        title="Price Alert Monitor",
        description=(
            "종목 가격 조건 알림 엔진\n\n"
            "등락률, 목표가/손절가, 신고가/신저가, 이동평균 골든크로스, 거래량 급증 등의 "
            "조건 알림을 주기적으로 확인하고 트리거 시 알림을 전파합니다."
        ),
        version=APP_VERSION,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.lifecycle = lifecycle
    app.state.broadcaster = broadcaster
    app.state.engine = engine
    app.state.monitor = None

    # 예외 핸들러 등록
    register_exception_handlers(app)

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(price_alerts_router)

    return app
