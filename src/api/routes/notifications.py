"""Notification inbox endpoints (polled by clients)."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_principal
from src.api.middleware import limiter
from src.api.schemas import MessageResponse, NotificationResponse, UnreadCountResponse
from src.config import settings
from src.domain.entities import Principal
from src.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).list_for_user(principal)


@router.get("/unread-count", response_model=UnreadCountResponse)
@limiter.limit(settings.rate_limit)
async def unread_count(
    request: Request,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(count=await NotificationService(db).unread_count(principal))


@router.put("/read-all", response_model=MessageResponse)
@limiter.limit(settings.rate_limit)
async def mark_all_read(
    request: Request,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationService(db).mark_all_read(principal)
    return MessageResponse(message=f"{updated} notifications marked as read")


@router.put("/{notification_id}/read", response_model=MessageResponse)
@limiter.limit(settings.rate_limit)
async def mark_read(
    request: Request,
    notification_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService(db).mark_read(principal, notification_id)
    return MessageResponse(message="Notification marked as read")
