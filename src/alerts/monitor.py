"""
가격 알림 감시 루프

주기적으로 활성 알림을 확인하고, 트리거된 알림을 생명주기 매니저로 처리한 뒤
콜백과 브로드캐스터로 전파합니다.

한 주기(tick)의 흐름:

1. 활성 알림 조회
2. 알림이 참조하는 종목 코드 수집 (중복 제거)
3. 종목별 시세 + K선 조회 → MarketSnapshot (동시성 제한, 모두 모인 뒤 평가 시작)
   조회 실패 종목은 이번 주기에서 제외
4. 알림별 쿨다운 확인 → 조건 평가 → 트리거 처리 → 알림 전파 (순차)

저장소/제공자는 동기 호출이므로 워커 스레드에서 실행합니다.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Awaitable, Callable
from datetime import UTC
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config.alerts import alert_settings
from src.alerts.lifecycle import AlertLifecycleManager
from src.alerts.models import PriceAlert
from src.alerts.providers import HistoryProvider, QuoteProvider
from src.alerts.snapshot import Bar, MarketSnapshot, build_snapshot
from src.exceptions import DataUnavailableError, MonitorStateError
from src.notification.broadcaster import AlertBroadcaster, AlertNotification
from src.utils.logger import get_logger

logger = get_logger(__name__)

AlertCallback = Callable[[AlertNotification], Awaitable[Any] | Any]


class AlertMonitor:
    """가격 알림 감시 루프 — 시작/중지/주기 변경 가능"""

    JOB_ID = "price_alert_check"
    MAX_HISTORY = 100

    def __init__(
        self,
        lifecycle: AlertLifecycleManager,
        quote_provider: QuoteProvider,
        history_provider: HistoryProvider | None = None,
        *,
        broadcaster: AlertBroadcaster | None = None,
        check_interval: float | None = None,
        event_loop: Any | None = None,
    ) -> None:
        """감시 루프 초기화

        Parameters
        ----------
        lifecycle:
            알림 생명주기 매니저 (쿨다운/평가/트리거 처리)
        quote_provider:
            실시간 시세 제공자
        history_provider:
            K선 제공자. None이면 이동평균/역사적 고저가가 0으로 계산됩니다.
        broadcaster:
            관찰자 채널. None이면 새로 만듭니다.
        check_interval:
            체크 주기 (초). None이면 설정값 사용.
        event_loop:
            APScheduler가 붙을 asyncio 이벤트 루프 (FastAPI lifespan에서 주입)
        """
        interval = alert_settings.check_interval_seconds if check_interval is None else check_interval
        self._validate_interval(interval)

        self._lifecycle = lifecycle
        self._quote_provider = quote_provider
        self._history_provider = history_provider
        self._broadcaster = broadcaster or AlertBroadcaster()
        self._event_loop = event_loop

        self._fetch_concurrency = alert_settings.fetch_concurrency
        self._kline_count = alert_settings.kline_count
        self._kline_period = alert_settings.kline_period

        # 아래 네 필드는 _lock으로 보호
        self._lock = threading.Lock()
        self._is_running = False
        self._scheduler: AsyncIOScheduler | None = None
        self._interval = float(interval)
        self._callback: AlertCallback | None = None

        self._stopped = asyncio.Event()
        self._callback_tasks: set[asyncio.Task[None]] = set()
        # 주기 실행과 수동 체크가 같은 알림을 동시에 트리거하지 않도록 직렬화
        self._fire_lock = asyncio.Lock()
        self._tick_history: list[dict[str, Any]] = []

    def _create_scheduler(self) -> AsyncIOScheduler:
        """AsyncIOScheduler 인스턴스를 생성합니다.

        루프를 주입받지 않았으면 start()를 호출한 실행 중 루프에 붙습니다.
        """
        event_loop = self._event_loop or asyncio.get_running_loop()
        return AsyncIOScheduler(timezone=UTC, event_loop=event_loop)

    @staticmethod
    def _validate_interval(seconds: float) -> None:
        if seconds <= 0:
            raise MonitorStateError(
                "체크 주기는 0보다 커야 합니다.",
                detail={"check_interval_seconds": seconds},
            )

    @property
    def broadcaster(self) -> AlertBroadcaster:
        return self._broadcaster

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._is_running

    @property
    def check_interval(self) -> float:
        with self._lock:
            return self._interval

    # ───────────────── 시작 / 중지 ─────────────────

    def start(self) -> None:
        """감시 시작 (이미 실행 중이면 무시)"""
        with self._lock:
            if self._is_running:
                logger.warning("알림 감시 루프가 이미 실행 중입니다")
                return

            self._scheduler = self._create_scheduler()
            self._scheduler.add_job(
                self.check_all_alerts,
                trigger=IntervalTrigger(seconds=self._interval),
                id=self.JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            self._scheduler.start()
            self._is_running = True
            self._stopped.clear()
            interval = self._interval

        logger.info("알림 감시 루프 시작: %.1f초 간격", interval)

    def stop(self) -> None:
        """감시 중지 (여러 번 호출해도 안전, 진행 중인 주기는 끝까지 실행)"""
        with self._lock:
            if not self._is_running:
                return

            # 재시작 시 새 스케줄러를 만들도록 비워 둠
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._is_running = False

        self._stopped.set()
        logger.info("알림 감시 루프 중지")

    async def run_forever(self) -> None:
        """감시를 시작하고 중지될 때까지 대기

        이 코루틴을 실행하는 태스크가 취소되면(앱 종료 등) 감시도 중지됩니다.
        """
        self.start()
        try:
            await self._stopped.wait()
        finally:
            self.stop()

    def set_check_interval(self, seconds: float) -> None:
        """체크 주기 변경

        실행 중이면 다음 예정 시각은 그대로 두고 트리거만 교체하므로
        이미 기다리고 있는 주기는 끊기지 않고 그 다음 주기부터 반영됩니다.
        """
        self._validate_interval(seconds)
        with self._lock:
            self._interval = float(seconds)
            if self._is_running and self._scheduler is not None:
                self._scheduler.modify_job(
                    self.JOB_ID,
                    trigger=IntervalTrigger(seconds=self._interval),
                )
        logger.info("알림 체크 주기 변경: %.1f초", seconds)

    def set_alert_trigger_callback(self, callback: AlertCallback | None) -> None:
        """트리거 콜백 등록 (None이면 해제). 동기/비동기 함수 모두 가능"""
        with self._lock:
            self._callback = callback

    # ───────────────── 주기 실행 ─────────────────

    async def check_all_alerts(self) -> list[AlertNotification]:
        """활성 알림 전체 확인 (한 주기)

        Returns:
            이번 주기에 트리거된 알림 목록
        """
        started_at = self._lifecycle.now()
        record: dict[str, Any] = {"timestamp": started_at.isoformat()}

        try:
            alerts = await asyncio.to_thread(self._lifecycle.get_active_alerts)
        except Exception:
            logger.exception("활성 알림 조회 실패")
            record["status"] = "error"
            self._append_history(record)
            return []

        if not alerts:
            record.update(status="idle", alerts=0, codes=0, snapshots=0, fired=0)
            self._append_history(record)
            return []

        codes = list(dict.fromkeys(alert.stock_code for alert in alerts))
        logger.debug("활성 알림 확인 시작: 알림 %d개, 종목 %d개", len(alerts), len(codes))

        snapshots = await self._collect_snapshots(codes)

        fired: list[AlertNotification] = []
        for alert in alerts:
            snapshot = snapshots.get(alert.stock_code)
            if snapshot is None:
                continue
            notification = await self._process_alert(alert, snapshot)
            if notification is not None:
                fired.append(notification)

        record.update(
            status="completed",
            alerts=len(alerts),
            codes=len(codes),
            snapshots=len(snapshots),
            fired=len(fired),
        )
        self._append_history(record)
        return fired

    async def check_stock_alerts(self, stock_code: str) -> list[AlertNotification]:
        """단일 종목 알림 즉시 확인 (주기와 무관하게 수동 실행)

        Raises:
            DataUnavailableError: 시세 조회 실패
        """
        alerts = await asyncio.to_thread(self._lifecycle.get_alerts_by_stock_code, stock_code)
        active = [alert for alert in alerts if alert.is_active]
        if not active:
            return []

        snapshot = await asyncio.to_thread(self._build_snapshot, stock_code)

        fired: list[AlertNotification] = []
        for alert in active:
            notification = await self._process_alert(alert, snapshot)
            if notification is not None:
                fired.append(notification)
        return fired

    async def drain_callbacks(self) -> None:
        """실행 중인 트리거 콜백이 모두 끝날 때까지 대기"""
        if self._callback_tasks:
            await asyncio.gather(*list(self._callback_tasks), return_exceptions=True)

    # ───────────────── 상태 조회 ─────────────────

    def get_status(self) -> dict[str, Any]:
        """감시 루프 상태 조회"""
        with self._lock:
            is_running = self._is_running
            interval = self._interval
            has_callback = self._callback is not None
            next_run_time = None
            if is_running and self._scheduler is not None:
                job = self._scheduler.get_job(self.JOB_ID)
                if job and job.next_run_time:
                    next_run_time = job.next_run_time.isoformat()

        return {
            "is_running": is_running,
            "check_interval_seconds": interval,
            "next_run_time": next_run_time,
            "has_callback": has_callback,
            "subscribers": self._broadcaster.subscriber_count,
            "total_ticks": len(self._tick_history),
            "last_tick": self._tick_history[-1] if self._tick_history else None,
        }

    def get_tick_history(self, limit: int = 10) -> list[dict[str, Any]]:
        """최근 주기 실행 기록 (최신순)"""
        if limit <= 0:
            return []
        return list(reversed(self._tick_history[-limit:]))

    # ───────────────── 내부 ─────────────────

    def _build_snapshot(self, stock_code: str) -> MarketSnapshot:
        """시세 + K선으로 스냅샷 생성 (K선 실패 시 시세만 사용)"""
        try:
            quote = self._quote_provider.get_quote(stock_code)
        except Exception as e:
            raise DataUnavailableError(
                f"시세 조회 실패: {stock_code}",
                detail={"stock_code": stock_code, "reason": str(e)},
            ) from e
        if quote is None:
            raise DataUnavailableError(
                f"시세 데이터가 없습니다: {stock_code}",
                detail={"stock_code": stock_code},
            )

        bars: list[Bar] | None = None
        if self._history_provider is not None:
            try:
                bars = self._history_provider.get_bars(
                    stock_code, self._kline_count, self._kline_period
                )
            except Exception as e:
                logger.warning(
                    "K선 조회 실패 — 시세만으로 평가: %s (%s)",
                    stock_code,
                    e,
                    extra={"stock_code": stock_code},
                )

        return build_snapshot(quote, bars)

    async def _collect_snapshots(self, codes: list[str]) -> dict[str, MarketSnapshot]:
        """종목별 스냅샷 수집 (모두 끝난 뒤 반환)"""
        semaphore = asyncio.Semaphore(self._fetch_concurrency)

        async def fetch(code: str) -> tuple[str, MarketSnapshot | None]:
            async with semaphore:
                try:
                    return code, await asyncio.to_thread(self._build_snapshot, code)
                except Exception as e:
                    logger.warning(
                        "시세 조회 실패 — 이번 주기 제외: %s (%s)",
                        code,
                        e,
                        extra={"stock_code": code},
                    )
                    return code, None

        results = await asyncio.gather(*(fetch(code) for code in codes))
        return {code: snapshot for code, snapshot in results if snapshot is not None}

    def _check_and_fire(
        self,
        alert: PriceAlert,
        snapshot: MarketSnapshot,
    ) -> AlertNotification | None:
        """쿨다운 → 평가 → 트리거 처리 (워커 스레드에서 실행)

        주기 시작 시 읽은 알림은 그 사이 다른 경로에서 트리거/비활성화됐을 수 있으므로
        저장소에서 최신 상태를 다시 읽어 판단합니다.
        """
        current = self._lifecycle.repository.get_alert(alert.id)
        if current is None:
            return None
        alert = current

        now = self._lifecycle.now()
        triggered, message = self._lifecycle.check_alert(alert, snapshot, now)
        if not triggered:
            return None

        triggered_at = self._lifecycle.trigger_alert(alert, snapshot, message, now)
        return AlertNotification(
            alert_id=alert.id,
            stock_code=alert.stock_code,
            stock_name=alert.stock_name,
            alert_type=alert.alert_type,
            trigger_price=snapshot.close_price,
            price_change=snapshot.price_change_percent,
            message=message,
            triggered_at=triggered_at,
            enable_sound=alert.enable_sound,
            enable_desktop=alert.enable_desktop,
        )

    async def _process_alert(
        self,
        alert: PriceAlert,
        snapshot: MarketSnapshot,
    ) -> AlertNotification | None:
        try:
            async with self._fire_lock:
                notification = await asyncio.to_thread(self._check_and_fire, alert, snapshot)
        except Exception:
            logger.exception(
                "알림 확인 실패: ID=%s",
                alert.id,
                extra={"alert_id": alert.id, "stock_code": alert.stock_code},
            )
            return None

        if notification is not None:
            self._dispatch(notification)
        return notification

    def _dispatch(self, notification: AlertNotification) -> None:
        """콜백(백그라운드 태스크)과 브로드캐스터로 전파"""
        with self._lock:
            callback = self._callback

        if callback is not None:
            task = asyncio.create_task(self._run_callback(callback, notification))
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_tasks.discard)

        delivered = self._broadcaster.publish(notification)
        logger.info(
            "가격 알림 전파: ID=%s, 종목=%s, 구독자=%d, 소리=%s, 데스크톱=%s",
            notification.alert_id,
            notification.stock_code,
            delivered,
            notification.enable_sound,
            notification.enable_desktop,
            extra={"alert_id": notification.alert_id, "stock_code": notification.stock_code},
        )

    async def _run_callback(
        self,
        callback: AlertCallback,
        notification: AlertNotification,
    ) -> None:
        try:
            if inspect.iscoroutinefunction(callback):
                await callback(notification)
            else:
                await asyncio.to_thread(callback, notification)
        except Exception:
            logger.exception(
                "알림 콜백 실행 실패: ID=%s",
                notification.alert_id,
                extra={"alert_id": notification.alert_id},
            )

    def _append_history(self, record: dict[str, Any]) -> None:
        self._tick_history.append(record)
        if len(self._tick_history) > self.MAX_HISTORY:
            self._tick_history = self._tick_history[-self.MAX_HISTORY:]
