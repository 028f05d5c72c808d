"""Resolve the caller's company / driver profile from the principal."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import Principal
from src.domain.enums import UserRole
from src.domain.errors import ForbiddenError, NotFoundError
from src.infrastructure.models import CompanyModel, DriverModel
from src.infrastructure.repositories import CompanyRepository, DriverRepository


class ProfileResolver:
    def __init__(self, session: AsyncSession):
        self.companies = CompanyRepository(session)
        self.drivers = DriverRepository(session)

    async def company_for(self, principal: Principal) -> CompanyModel:
        if principal.role != UserRole.COMPANY:
            raise ForbiddenError("Company role required")
        company = await self.companies.get_by_user_id(principal.user_id)
        if company is None:
            raise NotFoundError("Company profile not found")
        return company

    async def driver_for(self, principal: Principal) -> DriverModel:
        if principal.role != UserRole.DRIVER:
            raise ForbiddenError("Driver role required")
        driver = await self.drivers.get_by_user_id(principal.user_id)
        if driver is None:
            raise NotFoundError("Driver profile not found")
        return driver
