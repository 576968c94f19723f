import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from app.models.event import Event
from app.models.hold import Hold, HoldStatus
from app.models.order import Order, Ticket
from app.models.seat import Seat, SeatInventory, SeatStatus
from app.store.base import (DuplicateIdempotencyKey, HoldNotActive,
                            InventoryGuardFailed, InventoryStore)
from app.utils import utc_now


class InMemoryInventoryStore(InventoryStore):
    """Process-local backend for development and tests.

    The mutex stands in for the database's conditional write: it makes each
    compare-and-set and each settlement commit atomic, and is never held
    across calls. Records are copied in and out so callers cannot mutate
    stored state behind the store's back.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._seats: Dict[str, Seat] = {}
        self._events: Dict[str, Event] = {}
        self._inventory: Dict[Tuple[str, str], SeatInventory] = {}
        self._holds: Dict[str, Hold] = {}
        self._orders: Dict[str, Order] = {}
        self._tickets: Dict[str, Ticket] = {}
        self._idempotency: Dict[str, str] = {}  # key -> order_id

    # Inventory

    def get_inventory(self, event_id: str) -> List[SeatInventory]:
        with self._lock:
            return [
                row.model_copy()
                for (row_event_id, _), row in self._inventory.items()
                if row_event_id == event_id
            ]

    def get_inventory_row(self, event_id: str, seat_id: str) -> Optional[SeatInventory]:
        with self._lock:
            row = self._inventory.get((event_id, seat_id))
            return row.model_copy() if row else None

    def list_all_inventory(self) -> List[SeatInventory]:
        with self._lock:
            return [row.model_copy() for row in self._inventory.values()]

    def compare_and_set_status(self, event_id: str, seat_id: str,
                               expected_status: SeatStatus, new_status: SeatStatus,
                               hold_id: Optional[str] = None, holder_id: Optional[str] = None,
                               expected_hold_id: Optional[str] = None) -> bool:
        with self._lock:
            row = self._inventory.get((event_id, seat_id))
            if row is None or row.status != expected_status:
                return False
            if expected_hold_id is not None and row.hold_id != expected_hold_id:
                return False

            row.status = new_status
            if new_status == SeatStatus.HELD:
                row.hold_id = hold_id
                row.holder_id = holder_id
            else:
                row.hold_id = None
                row.holder_id = None
            row.updated_at = utc_now()
            return True

    def init_inventory(self, event_id: str, seat_ids: List[str]) -> int:
        created = 0
        with self._lock:
            for seat_id in seat_ids:
                if (event_id, seat_id) in self._inventory:
                    continue
                self._inventory[(event_id, seat_id)] = SeatInventory(
                    event_id=event_id,
                    seat_id=seat_id,
                    status=SeatStatus.AVAILABLE,
                    updated_at=utc_now(),
                )
                created += 1
        return created

    # Holds

    def put_hold(self, hold: Hold) -> None:
        with self._lock:
            self._holds[hold.hold_id] = hold.model_copy(deep=True)

    def get_hold(self, hold_id: str) -> Optional[Hold]:
        with self._lock:
            hold = self._holds.get(hold_id)
            return hold.model_copy(deep=True) if hold else None

    def transition_hold(self, hold_id: str, expected_status: HoldStatus,
                        new_status: HoldStatus) -> bool:
        with self._lock:
            hold = self._holds.get(hold_id)
            if hold is None or hold.status != expected_status:
                return False
            hold.status = new_status
            return True

    def list_holds(self, status: Optional[HoldStatus] = None,
                   holder_id: Optional[str] = None) -> List[Hold]:
        with self._lock:
            holds = [
                hold.model_copy(deep=True)
                for hold in self._holds.values()
                if (status is None or hold.status == status)
                and (holder_id is None or hold.holder_id == holder_id)
            ]
        holds.sort(key=lambda h: h.created_at, reverse=True)
        return holds

    def find_expired_holds(self, now: datetime) -> List[Hold]:
        with self._lock:
            return [
                hold.model_copy(deep=True)
                for hold in self._holds.values()
                if hold.status == HoldStatus.ACTIVE and hold.expire_at < now
            ]

    # Settlement

    def commit_settlement(self, hold: Hold, order: Order, tickets: List[Ticket],
                          now: datetime) -> None:
        with self._lock:
            # Check every guard before touching anything
            if order.idempotency_key in self._idempotency:
                raise DuplicateIdempotencyKey(order.idempotency_key)

            stored_hold = self._holds.get(hold.hold_id)
            if (stored_hold is None or stored_hold.status != HoldStatus.ACTIVE
                    or stored_hold.is_expired(now)):
                raise HoldNotActive(hold.hold_id)

            unlinked = []
            for seat_id in stored_hold.seat_ids:
                row = self._inventory.get((stored_hold.event_id, seat_id))
                if row is None or row.status != SeatStatus.HELD or row.hold_id != hold.hold_id:
                    unlinked.append(seat_id)
            if unlinked:
                raise InventoryGuardFailed(unlinked)

            self._idempotency[order.idempotency_key] = order.order_id
            self._orders[order.order_id] = order.model_copy(deep=True)
            for ticket in tickets:
                self._tickets[ticket.ticket_id] = ticket.model_copy()

            stored_hold.status = HoldStatus.CONFIRMED
            for seat_id in stored_hold.seat_ids:
                row = self._inventory[(stored_hold.event_id, seat_id)]
                row.status = SeatStatus.SOLD
                row.hold_id = None
                row.holder_id = None
                row.updated_at = now

    def get_order_by_idempotency_key(self, idempotency_key: str) -> Optional[Order]:
        with self._lock:
            order_id = self._idempotency.get(idempotency_key)
            if order_id is None:
                return None
            return self._orders[order_id].model_copy(deep=True)

    def get_tickets_for_order(self, order_id: str) -> List[Ticket]:
        with self._lock:
            return [t.model_copy() for t in self._tickets.values() if t.order_id == order_id]

    def list_orders(self, holder_id: Optional[str] = None) -> List[Order]:
        with self._lock:
            orders = [
                o.model_copy(deep=True)
                for o in self._orders.values()
                if holder_id is None or o.holder_id == holder_id
            ]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def list_tickets(self, holder_id: Optional[str] = None) -> List[Ticket]:
        with self._lock:
            tickets = [
                t.model_copy()
                for t in self._tickets.values()
                if holder_id is None or t.holder_id == holder_id
            ]
        tickets.sort(key=lambda t: t.created_at, reverse=True)
        return tickets

    # Catalog

    def put_seats(self, seats: List[Seat]) -> int:
        inserted = 0
        with self._lock:
            for seat in seats:
                if seat.seat_id in self._seats:
                    continue
                self._seats[seat.seat_id] = seat.model_copy()
                inserted += 1
        return inserted

    def list_seats(self) -> List[Seat]:
        with self._lock:
            seats = [s.model_copy() for s in self._seats.values()]
        seats.sort(key=lambda s: (s.section, s.row, s.number))
        return seats

    def get_seat(self, seat_id: str) -> Optional[Seat]:
        with self._lock:
            seat = self._seats.get(seat_id)
            return seat.model_copy() if seat else None

    def put_event(self, event: Event) -> None:
        with self._lock:
            self._events[event.event_id] = event.model_copy()

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._lock:
            event = self._events.get(event_id)
            return event.model_copy() if event else None

    def list_events(self) -> List[Event]:
        with self._lock:
            return [e.model_copy() for e in self._events.values()]
