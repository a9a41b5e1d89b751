"""
Discord 알림 모듈

Discord Webhook을 통해 가격 알림 트리거 메시지를 전송합니다.
AlertMonitor의 트리거 콜백으로 등록해서 사용할 수 있습니다::

    notifier = DiscordNotifier()
    monitor.set_alert_trigger_callback(notifier.send_alert)
"""

from __future__ import annotations

from typing import Any

import httpx

from config.settings import settings
from src.notification.broadcaster import AlertNotification
from src.utils.logger import get_logger

logger = get_logger(__name__)

ALERT_TYPE_EMOJI = {
    "price_change": "📈",
    "target_price": "🟢",
    "stop_loss": "🔴",
    "high_low": "📊",
    "ma_deviation": "〰️",
    "combined": "🔔",
}


class DiscordNotifier:
    """Discord Webhook 알림기"""

    def __init__(self, webhook_url: str | None = None, timeout: float = 10.0) -> None:
        """
        Args:
            webhook_url: Discord Webhook URL (None이면 settings에서 가져옴)
            timeout: 요청 타임아웃 (초)
        """
        self.webhook_url = webhook_url or settings.discord_webhook_url
        self.timeout = timeout

    async def send_alert(self, notification: AlertNotification) -> bool:
        """
        트리거된 알림을 Discord로 전송합니다.

        Args:
            notification: 알림 페이로드

        Returns:
            전송 성공 여부
        """
        if not self.webhook_url:
            logger.warning("Discord Webhook URL이 설정되지 않았습니다.")
            return False

        payload = {"embeds": [self._build_alert_embed(notification)]}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    timeout=self.timeout,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "Discord 알림 전송 실패: %s",
                e,
                extra={"alert_id": notification.alert_id},
            )
            return False

        logger.info(
            "Discord 알림 전송 완료: 종목=%s, 유형=%s",
            notification.stock_code,
            notification.alert_type,
            extra={"alert_id": notification.alert_id},
        )
        return True

    def _build_alert_embed(self, notification: AlertNotification) -> dict[str, Any]:
        """알림 Embed 생성"""
        emoji = ALERT_TYPE_EMOJI.get(notification.alert_type, "⚠️")
        title = f"{emoji} {notification.stock_name or notification.stock_code} 가격 알림"

        fields = [
            {
                "name": "종목 코드",
                "value": notification.stock_code,
                "inline": True,
            },
            {
                "name": "현재가",
                "value": f"{notification.trigger_price:,.2f}",
                "inline": True,
            },
            {
                "name": "등락률",
                "value": f"{notification.price_change:+.2f}%",
                "inline": True,
            },
        ]

        if notification.message:
            fields.append({
                "name": "조건",
                "value": notification.message,
                "inline": False,
            })

        falling = notification.alert_type == "stop_loss" or notification.price_change < 0
        color = 0xFF0000 if falling else 0x00FF00

        return {
            "title": title,
            "description": "알림 조건이 충족되었습니다.",
            "color": color,
            "fields": fields,
            "timestamp": notification.triggered_at.isoformat(),
        }
