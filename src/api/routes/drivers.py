"""
Driver endpoints
================

PUT /api/v1/driver/availability   -- driver sets location and time window
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_principal
from src.api.middleware import limiter
from src.api.schemas import AvailabilityUpdate, DriverResponse
from src.config import settings
from src.domain.entities import Principal
from src.services.drivers import DriverService

router = APIRouter(prefix="/driver", tags=["drivers"])


@router.put(
    "/availability",
    response_model=DriverResponse,
    summary="Set the calling driver's location and availability window",
)
@limiter.limit(settings.rate_limit)
async def update_availability(
    request: Request,
    body: AvailabilityUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await DriverService(db).update_availability(
        principal, body.current_location, body.available_from, body.available_to
    )
