"""
알림 브로드캐스터

트리거된 알림을 UI/관찰자 계층으로 전파하는 옵저버 채널입니다.
구독자마다 크기가 제한된 asyncio.Queue를 두고, 큐가 가득 차면
해당 구독자에게는 메시지를 버립니다. 느린 구독자가 감시 루프를 막지 않습니다.

publish()는 이벤트 루프 스레드에서 호출해야 합니다.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel

from config.alerts import alert_settings
from src.utils.logger import get_logger

logger = get_logger(__name__)


class AlertNotification(BaseModel):
    """알림 전파 페이로드 (콜백과 브로드캐스트가 같은 형태를 받음)"""

    alert_id: int
    stock_code: str
    stock_name: str
    alert_type: str
    trigger_price: float
    price_change: float  # 등락률 (%)
    message: str
    triggered_at: datetime
    enable_sound: bool = True
    enable_desktop: bool = True


@dataclass(slots=True)
class SubscriptionStats:
    delivered: int = 0
    dropped: int = 0
    consumed: int = 0


class AlertSubscription:
    """구독자별 알림 큐"""

    def __init__(self, maxsize: int) -> None:
        self._queue: asyncio.Queue[AlertNotification] = asyncio.Queue(maxsize=maxsize)
        self.stats = SubscriptionStats()

    def try_put(self, notification: AlertNotification) -> bool:
        """큐에 넣기 (가득 차면 버리고 False)"""
        try:
            self._queue.put_nowait(notification)
            self.stats.delivered += 1
            return True
        except asyncio.QueueFull:
            self.stats.dropped += 1
            return False

    async def get(self) -> AlertNotification:
        notification = await self._queue.get()
        self.stats.consumed += 1
        return notification

    def get_nowait(self) -> AlertNotification:
        notification = self._queue.get_nowait()
        self.stats.consumed += 1
        return notification

    def qsize(self) -> int:
        return self._queue.qsize()


class AlertBroadcaster:
    """알림 옵저버 채널"""

    def __init__(self, queue_size: int | None = None) -> None:
        self._queue_size = queue_size or alert_settings.broadcast_queue_size
        self._lock = threading.Lock()
        self._subscriptions: list[AlertSubscription] = []

    def subscribe(self, maxsize: int | None = None) -> AlertSubscription:
        """새 구독 생성"""
        subscription = AlertSubscription(maxsize or self._queue_size)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("알림 구독 추가 (총 %d)", self.subscriber_count)
        return subscription

    def unsubscribe(self, subscription: AlertSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, notification: AlertNotification) -> int:
        """모든 구독자에게 전파

        Returns:
            전달에 성공한 구독자 수
        """
        with self._lock:
            subscriptions = list(self._subscriptions)

        delivered = 0
        for subscription in subscriptions:
            if subscription.try_put(notification):
                delivered += 1
            else:
                logger.warning(
                    "알림 구독 큐가 가득 차 메시지를 버렸습니다: ID=%s",
                    notification.alert_id,
                    extra={
                        "alert_id": notification.alert_id,
                        "stock_code": notification.stock_code,
                    },
                )
        return delivered
