"""
Notification emitter and inbox operations.

``emit`` is a side effect of state-changing operations: the row is written
inside a SAVEPOINT and the ``notification.created`` event is queued on the
session.  The queue is published by ``publish_pending_events`` once the
unit of work has committed, and dropped by ``discard_pending_events`` when
it rolls back, so subscribers never hear about rows that were not saved.
A failed insert or publish is logged and never reaches the caller.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import Principal
from src.domain.errors import NotFoundError
from src.infrastructure.models import NotificationModel
from src.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)

PENDING_EVENTS = "pending_notification_events"


class EventPublisher(Protocol):
    async def publish_created(self, notification: NotificationModel) -> int: ...


class NotificationService:
    def __init__(
        self, session: AsyncSession, publisher: Optional[EventPublisher] = None
    ):
        self.session = session
        self.publisher = publisher
        self.repo = NotificationRepository(session)

    async def emit(
        self, user_id: int, title: str, message: str
    ) -> Optional[NotificationModel]:
        try:
            async with self.session.begin_nested():
                notification = await self.repo.create(
                    NotificationModel(user_id=user_id, title=title, message=message)
                )
        except Exception:
            logger.exception(
                "Failed to store notification %r for user %s", title, user_id
            )
            return None

        if self.publisher is not None:
            self.session.info.setdefault(PENDING_EVENTS, []).append(
                (self.publisher, notification)
            )
        return notification

    # ── Inbox ────────────────────────────────────────────────────────

    async def list_for_user(self, principal: Principal) -> list[NotificationModel]:
        return await self.repo.list_for_user(principal.user_id)

    async def unread_count(self, principal: Principal) -> int:
        return await self.repo.count_unread(principal.user_id)

    async def mark_read(self, principal: Principal, notification_id: int) -> None:
        if not await self.repo.mark_read(notification_id, principal.user_id):
            raise NotFoundError("Notification not found")

    async def mark_all_read(self, principal: Principal) -> int:
        return await self.repo.mark_all_read(principal.user_id)


async def publish_pending_events(session: AsyncSession) -> int:
    """Publish events queued by ``emit``.  Call after the commit."""
    published = 0
    for publisher, notification in session.info.pop(PENDING_EVENTS, []):
        # Rolled back with an enclosing savepoint.
        if not inspect(notification).persistent:
            continue
        try:
            await publisher.publish_created(notification)
        except Exception as exc:
            logger.warning(
                "Notification %s stored but event not published: %s",
                notification.id,
                exc,
            )
        else:
            published += 1
    return published


def discard_pending_events(session: AsyncSession) -> None:
    session.info.pop(PENDING_EVENTS, None)
