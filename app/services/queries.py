from typing import List, Optional

from app.errors import NotFound
from app.models.admin import AdminMetrics, AdminSnapshot
from app.models.hold import HoldStatus
from app.models.order import Order, Ticket
from app.models.seat import SeatMapResponse, SeatStatus
from app.store.base import InventoryStore


class QueryFacade:
    """Read-only projections for UI collaborators. Results may be slightly stale."""

    def __init__(self, store: InventoryStore):
        self.store = store

    def seat_map(self, event_id: str) -> SeatMapResponse:
        if self.store.get_event(event_id) is None:
            raise NotFound(f"Event with ID {event_id} not found")

        inventory = self.store.get_inventory(event_id)
        on_sale = {row.seat_id for row in inventory}
        seats = [seat for seat in self.store.list_seats() if seat.seat_id in on_sale]
        inventory.sort(key=lambda row: row.seat_id)
        return SeatMapResponse(event_id=event_id, seats=seats, inventory=inventory)

    def orders_for(self, holder_id: str) -> List[Order]:
        return self.store.list_orders(holder_id)

    def tickets_for(self, holder_id: str) -> List[Ticket]:
        return self.store.list_tickets(holder_id)

    def admin_snapshot(self, event_id: Optional[str] = None) -> AdminSnapshot:
        if event_id is not None:
            inventory = self.store.get_inventory(event_id)
        else:
            inventory = self.store.list_all_inventory()

        holds = self.store.list_holds()
        if event_id is not None:
            holds = [hold for hold in holds if hold.event_id == event_id]

        sold = [row for row in inventory if row.status == SeatStatus.SOLD]
        held = [row for row in inventory if row.status == SeatStatus.HELD]
        available = [row for row in inventory if row.status == SeatStatus.AVAILABLE]

        return AdminSnapshot(
            active_holds=[hold for hold in holds if hold.status == HoldStatus.ACTIVE],
            sold_seats=sold,
            expired_holds=[hold for hold in holds if hold.status == HoldStatus.EXPIRED],
            metrics=AdminMetrics(
                total_seats=len(inventory),
                sold_seats=len(sold),
                held_seats=len(held),
                available_seats=len(available),
            ),
        )
