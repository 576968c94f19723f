from typing import List, Optional, Tuple

from app.errors import CatalogConflict, NotFound
from app.logger_config import logger
from app.models.event import Event, EventCreate
from app.models.seat import Seat, SeatCreate
from app.store.base import InventoryStore
from app.utils import generate_event_id, utc_now


class CatalogService:
    """Loads the seat catalog and opens events for sale"""

    def __init__(self, store: InventoryStore):
        self.store = store

    def load_seats(self, seats: List[SeatCreate]) -> List[Seat]:
        """Add seats to the catalog; re-loading an identical seat is a no-op.

        A seat's price is what every hold on it will be charged, so a load
        that would change an existing seat is rejected as a whole.
        """
        catalog = [Seat(**seat.model_dump()) for seat in seats]
        changed = []
        for seat in catalog:
            existing = self.store.get_seat(seat.seat_id)
            if existing is not None and existing != seat:
                changed.append(seat.seat_id)
        if changed:
            raise CatalogConflict(f"Seats already in catalog with different details: {changed}")

        inserted = self.store.put_seats(catalog)
        logger.info(f"Loaded {inserted} new seats into the catalog ({len(catalog) - inserted} already present)")
        return catalog

    def list_seats(self) -> List[Seat]:
        return self.store.list_seats()

    def create_event(self, event_data: EventCreate, event_id: Optional[str] = None) -> Tuple[Event, int]:
        catalog_ids = {seat.seat_id for seat in self.store.list_seats()}
        if event_data.seat_ids is None:
            seat_ids = sorted(catalog_ids)
        else:
            unknown = sorted(set(event_data.seat_ids) - catalog_ids)
            if unknown:
                raise NotFound(f"Seats not in catalog: {unknown}")
            seat_ids = sorted(set(event_data.seat_ids))

        event = Event(
            event_id=event_id or generate_event_id(),
            name=event_data.name,
            date=event_data.date,
            venue=event_data.venue,
            image_url=event_data.image_url,
            created_at=utc_now(),
        )
        self.store.put_event(event)
        created = self.store.init_inventory(event.event_id, seat_ids)
        logger.info(f"Event {event.event_id} opened with {created} seats")
        return event, created

    def list_events(self) -> List[Event]:
        events = [event for event in self.store.list_events() if event.status == "active"]
        events.sort(key=lambda e: e.created_at)
        return events

    def get_event(self, event_id: str) -> Event:
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFound(f"Event with ID {event_id} not found")
        return event
