"""Availability routes - psychologist windows."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, HTTPException

from planning.api.deps import DBSession
from planning.models.availability import WindowStatus
from planning.schemas.availability import AvailabilityCreate, AvailabilityResponse, AvailabilityUpdate
from planning.services.availability_service import AvailabilityService

router = APIRouter()


@router.post("/", response_model=AvailabilityResponse, status_code=201)
async def add_window(window_data: AvailabilityCreate, db: DBSession):
    """Declare a free availability window."""
    service = AvailabilityService(db)
    return await service.add_window(
        window_data.owner_id,
        window_data.date,
        window_data.start_time,
        window_data.end_time,
    )


@router.get("/", response_model=list[AvailabilityResponse])
async def list_windows(
    db: DBSession,
    owner_id: UUID | None = None,
    status: WindowStatus | None = None,
    day: date | None = None,
):
    """List windows, optionally filtered by psychologist, status and date."""
    service = AvailabilityService(db)
    return await service.list_windows(owner_id=owner_id, day=day, status=status)


@router.get("/{window_id}", response_model=AvailabilityResponse)
async def get_window(window_id: UUID, db: DBSession):
    """Get an availability window by ID."""
    service = AvailabilityService(db)
    window = await service.get_window(window_id)

    if not window:
        raise HTTPException(status_code=404, detail="Availability window not found")

    return window


@router.patch("/{window_id}", response_model=AvailabilityResponse)
async def update_window(window_id: UUID, window_data: AvailabilityUpdate, db: DBSession):
    """Move or resize a free window."""
    service = AvailabilityService(db)
    return await service.update_window(
        window_id,
        day=window_data.date,
        start=window_data.start_time,
        end=window_data.end_time,
    )


@router.delete("/{window_id}", response_model=AvailabilityResponse)
async def delete_window(window_id: UUID, db: DBSession):
    """Delete a free window. Booked windows must be released by cancelling first."""
    service = AvailabilityService(db)
    return await service.delete_window(window_id)
