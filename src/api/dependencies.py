"""FastAPI dependency injection helpers."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import async_session_factory
from src.infrastructure.repositories import BookingRepository
from src.services.tracking import TrackingService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_bookings(db: AsyncSession = Depends(get_db)) -> BookingRepository:
    return BookingRepository(db)


def get_tracking(request: Request) -> TrackingService:
    return request.app.state.tracking
