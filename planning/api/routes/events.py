"""Event routes - events and registrations."""

from fastapi import APIRouter, HTTPException
from uuid import UUID

from planning.api.deps import DBSession
from planning.schemas.event import (
    EventCreate,
    EventRegistration,
    EventUpdate,
    EventParticipantResponse,
    EventResponse,
)
from planning.services.event_service import EventService

router = APIRouter()


@router.post("/", response_model=EventResponse, status_code=201)
async def create_event(event_data: EventCreate, db: DBSession):
    """Create an event."""
    service = EventService(db)
    event = await service.create_event(**event_data.model_dump())
    return await service.get_event(event.id)


@router.get("/", response_model=list[EventResponse])
async def list_events(db: DBSession):
    """List all events."""
    service = EventService(db)
    return await service.get_events()


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: UUID, db: DBSession):
    """Get an event by ID."""
    service = EventService(db)
    event = await service.get_event(event_id)

    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    return event


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(event_id: UUID, event_data: EventUpdate, db: DBSession):
    """Update an event; a new date or time re-issues participants' reminders."""
    service = EventService(db)
    return await service.update_event(event_id, event_data.model_dump(exclude_unset=True))


@router.delete("/{event_id}", status_code=204)
async def delete_event(event_id: UUID, db: DBSession):
    """Delete an event, its registrations and its pending reminders."""
    service = EventService(db)
    await service.delete_event(event_id)


@router.get("/{event_id}/participants", response_model=list[EventParticipantResponse])
async def get_participants(event_id: UUID, db: DBSession):
    """List an event's registrations in joining order."""
    service = EventService(db)
    return await service.get_participants(event_id)


@router.post("/{event_id}/registrations", response_model=EventResponse, status_code=201)
async def register_for_event(event_id: UUID, registration: EventRegistration, db: DBSession):
    """Register a patient to an event."""
    service = EventService(db)
    return await service.register_for_event(event_id, registration.patient_id)


@router.delete("/{event_id}/registrations/{patient_id}", response_model=EventResponse)
async def cancel_registration(event_id: UUID, patient_id: UUID, db: DBSession):
    """Cancel a patient's registration."""
    service = EventService(db)
    return await service.cancel_registration(event_id, patient_id)
