from typing import List

from fastapi import APIRouter, Path
from starlette.concurrency import run_in_threadpool

from app.dependencies import catalog_service, query_facade
from app.models.seat import Seat, SeatCatalogCreate, SeatMapResponse

router = APIRouter(tags=["event-seats"])


@router.get("/events/{event_id}/seat-map", response_model=SeatMapResponse)
async def get_seat_map(event_id: str = Path(..., description="The event ID")):
    """Get seats and their live inventory status for an event"""
    return await run_in_threadpool(query_facade.seat_map, event_id)


@router.post("/seats", response_model=List[Seat])
async def load_seat_catalog(seat_data: SeatCatalogCreate):
    """Add seats to the catalog; existing seats cannot be changed"""
    return await run_in_threadpool(catalog_service.load_seats, seat_data.seats)


@router.get("/seats", response_model=List[Seat])
async def get_seat_catalog():
    """Get the full seat catalog"""
    return await run_in_threadpool(catalog_service.list_seats)
