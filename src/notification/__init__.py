"""
알림 전파 패키지

트리거된 가격 알림을 관찰자(브로드캐스터)와 외부 채널(Discord)로 전달합니다.
"""

from __future__ import annotations

__all__ = [
    "AlertBroadcaster",
    "AlertNotification",
    "AlertSubscription",
    "DiscordNotifier",
]

from src.notification.broadcaster import AlertBroadcaster, AlertNotification, AlertSubscription
from src.notification.discord_notifier import DiscordNotifier
