"""FastAPI dependency injection helpers."""

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.entities import Principal
from src.domain.enums import UserRole
from src.infrastructure.database import async_session_factory
from src.infrastructure.events import NotificationPublisher
from src.infrastructure.redis_client import get_redis
from src.services.notifications import discard_pending_events, publish_pending_events


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error.

    Notification events are published only after the commit.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_pending_events(session)
            raise
        await publish_pending_events(session)


def get_principal(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    x_user_role: str | None = Header(None, alias="X-User-Role"),
) -> Principal:
    """Caller identity as forwarded by the authenticating gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication headers",
        )
    try:
        user_id = int(x_user_id)
        role = UserRole(x_user_role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed authentication headers",
        )
    return Principal(user_id=user_id, role=role)


async def get_publisher() -> NotificationPublisher:
    return NotificationPublisher(await get_redis(), settings.notification_channel)
