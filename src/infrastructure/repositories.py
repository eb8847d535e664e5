"""
Repository Pattern -- abstracts DB access so the tracking core stays
DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel
from src.domain.enums import BookingStatus, RideStatus


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: str) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_by_id_for_update(self, booking_id: str) -> Optional[BookingModel]:
        """SELECT ... FOR UPDATE so concurrent status changes serialize in the DB too."""
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_many(self, booking_ids: list[str]) -> dict[str, BookingModel]:
        if not booking_ids:
            return {}
        result = await self.session.execute(
            select(BookingModel).where(BookingModel.id.in_(booking_ids))
        )
        return {b.id: b for b in result.scalars().all()}

    async def update_ride_status(
        self,
        booking_id: str,
        ride_status: RideStatus,
        booking_status: BookingStatus,
    ) -> None:
        """Persist both statuses in one statement."""
        await self.session.execute(
            update(BookingModel)
            .where(BookingModel.id == booking_id)
            .values(current_ride_status=ride_status, status=booking_status)
        )
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()
