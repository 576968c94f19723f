from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from app.models.event import Event
from app.models.hold import Hold, HoldStatus
from app.models.order import Order, Ticket
from app.models.seat import Seat, SeatInventory, SeatStatus


class DuplicateIdempotencyKey(Exception):
    """Settlement commit refused: the idempotency key is already recorded"""


class HoldNotActive(Exception):
    """Settlement commit refused: the hold left ACTIVE before the commit landed"""


class InventoryGuardFailed(Exception):
    """Settlement commit refused: a seat is no longer HELD by the hold"""

    def __init__(self, seat_ids: List[str]) -> None:
        self.seat_ids = seat_ids
        super().__init__(f"Seats no longer linked to hold: {seat_ids}")


class InventoryStore(ABC):
    """Persistence contract shared by every backend.

    All inventory writes go through compare_and_set_status and all hold
    writes through transition_hold, so correctness never depends on an
    application-level lock. Backends must make each of those calls atomic
    per record, and commit_settlement atomic as a whole.
    """

    # Inventory

    @abstractmethod
    def get_inventory(self, event_id: str) -> List[SeatInventory]:
        ...

    @abstractmethod
    def get_inventory_row(self, event_id: str, seat_id: str) -> Optional[SeatInventory]:
        ...

    @abstractmethod
    def list_all_inventory(self) -> List[SeatInventory]:
        ...

    @abstractmethod
    def compare_and_set_status(self, event_id: str, seat_id: str,
                               expected_status: SeatStatus, new_status: SeatStatus,
                               hold_id: Optional[str] = None, holder_id: Optional[str] = None,
                               expected_hold_id: Optional[str] = None) -> bool:
        """Atomically move one seat from expected_status to new_status.

        Returns False when the stored status (or linked hold, if
        expected_hold_id is given) does not match. Moving to any status
        other than HELD clears the hold and holder references.
        """

    @abstractmethod
    def init_inventory(self, event_id: str, seat_ids: List[str]) -> int:
        """Create AVAILABLE rows for seats that do not have one yet"""

    # Holds

    @abstractmethod
    def put_hold(self, hold: Hold) -> None:
        ...

    @abstractmethod
    def get_hold(self, hold_id: str) -> Optional[Hold]:
        ...

    @abstractmethod
    def transition_hold(self, hold_id: str, expected_status: HoldStatus,
                        new_status: HoldStatus) -> bool:
        ...

    @abstractmethod
    def list_holds(self, status: Optional[HoldStatus] = None,
                   holder_id: Optional[str] = None) -> List[Hold]:
        ...

    @abstractmethod
    def find_expired_holds(self, now: datetime) -> List[Hold]:
        """ACTIVE holds whose expire_at is before now"""

    # Settlement

    @abstractmethod
    def commit_settlement(self, hold: Hold, order: Order, tickets: List[Ticket],
                          now: datetime) -> None:
        """Record the order and tickets and move hold and seats, all or nothing.

        The hold must still be ACTIVE and not past its expire_at at now.
        Raises DuplicateIdempotencyKey, HoldNotActive or InventoryGuardFailed
        without applying anything.
        """

    @abstractmethod
    def get_order_by_idempotency_key(self, idempotency_key: str) -> Optional[Order]:
        ...

    @abstractmethod
    def get_tickets_for_order(self, order_id: str) -> List[Ticket]:
        """Strongly consistent: a replay must see the tickets its commit wrote"""

    @abstractmethod
    def list_orders(self, holder_id: Optional[str] = None) -> List[Order]:
        ...

    @abstractmethod
    def list_tickets(self, holder_id: Optional[str] = None) -> List[Ticket]:
        ...

    # Catalog

    @abstractmethod
    def put_seats(self, seats: List[Seat]) -> int:
        """Insert seats not yet in the catalog; existing seats are never overwritten.

        Returns how many seats were inserted.
        """

    @abstractmethod
    def list_seats(self) -> List[Seat]:
        ...

    @abstractmethod
    def get_seat(self, seat_id: str) -> Optional[Seat]:
        ...

    @abstractmethod
    def put_event(self, event: Event) -> None:
        ...

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[Event]:
        ...

    @abstractmethod
    def list_events(self) -> List[Event]:
        ...
