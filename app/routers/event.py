from typing import List

from fastapi import APIRouter, Path
from starlette.concurrency import run_in_threadpool

from app.dependencies import catalog_service
from app.models.event import Event, EventCreate, EventResponse

router = APIRouter(tags=["events"])


def _to_response(event: Event, seats_created=None) -> EventResponse:
    return EventResponse(
        event_id=event.event_id,
        name=event.name,
        date=event.date,
        venue=event.venue,
        image_url=event.image_url,
        status=event.status,
        created_at=event.created_at,
        seats_created=seats_created,
    )


@router.post("/events", response_model=EventResponse)
async def create_event(event_data: EventCreate):
    """Create a new event and open its seats for sale"""
    event, seats_created = await run_in_threadpool(catalog_service.create_event, event_data)
    return _to_response(event, seats_created)


@router.get("/events", response_model=List[EventResponse])
async def get_events():
    """Get all active events"""
    events = await run_in_threadpool(catalog_service.list_events)
    return [_to_response(event) for event in events]


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(event_id: str = Path(..., description="The event ID")):
    """Get a specific event by ID"""
    event = await run_in_threadpool(catalog_service.get_event, event_id)
    return _to_response(event)
