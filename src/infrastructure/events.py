"""
Notification event publisher.

Every persisted notification is announced on a Redis pub/sub channel as a
``notification.created`` JSON event so inbox collaborators (websocket
gateways, mail bridges) can subscribe instead of polling.
"""

from __future__ import annotations

import json

import redis.asyncio as aioredis

from .models import NotificationModel

EVENT_NOTIFICATION_CREATED = "notification.created"


class NotificationPublisher:
    def __init__(self, client: aioredis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    @staticmethod
    def serialize(notification: NotificationModel) -> str:
        created_at = notification.created_at
        return json.dumps(
            {
                "event": EVENT_NOTIFICATION_CREATED,
                "id": notification.id,
                "user_id": notification.user_id,
                "title": notification.title,
                "message": notification.message,
                "created_at": created_at.isoformat() if created_at else None,
            }
        )

    async def publish_created(self, notification: NotificationModel) -> int:
        """Publish the event; returns the number of subscribers reached."""
        return await self.redis.publish(self.channel, self.serialize(notification))
