from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.database import DynamoDBClient
from app.errors import StoreUnavailable
from app.logger_config import logger
from app.models.event import Event
from app.models.hold import Hold, HoldStatus
from app.models.order import Order, Ticket
from app.models.seat import Seat, SeatInventory, SeatStatus
from app.store.base import (DuplicateIdempotencyKey, HoldNotActive,
                            InventoryGuardFailed, InventoryStore)
from app.utils import (cancellation_codes, create_settlement_transaction_items,
                       from_timestamp, idempotency_pk, seat_sort_key,
                       to_decimal, to_timestamp, utc_now)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
TRANSACTION_CANCELED = "TransactionCanceledException"

CATALOG_PK = "CATALOG"
STATUS_NAMES = {"#status": "status"}

# Fixed positions inside the settlement transaction, see create_settlement_transaction_items
IDEMPOTENCY_INDEX = 0
HOLD_INDEX = 2
FIRST_SEAT_INDEX = 3


def _number(value: Any) -> float:
    return float(value) if isinstance(value, Decimal) else value


def _inventory_from_item(item: Dict[str, Any]) -> SeatInventory:
    return SeatInventory(
        event_id=item["event_id"],
        seat_id=item["seat_id"],
        status=item["status"],
        hold_id=item.get("hold_id"),
        holder_id=item.get("holder_id"),
        updated_at=from_timestamp(item["updated_at"]) if item.get("updated_at") else None,
    )


def _hold_from_item(item: Dict[str, Any]) -> Hold:
    return Hold(
        hold_id=item["hold_id"],
        event_id=item["event_id"],
        seat_ids=list(item["seat_ids"]),
        holder_id=item["holder_id"],
        expire_at=from_timestamp(item["expire_at"]),
        status=item["status"],
        created_at=from_timestamp(item["created_at"]),
    )


def _order_from_item(item: Dict[str, Any]) -> Order:
    return Order(
        order_id=item["order_id"],
        holder_id=item["holder_id"],
        event_id=item["event_id"],
        seat_ids=list(item["seat_ids"]),
        hold_id=item["hold_id"],
        amount=_number(item["amount"]),
        status=item["status"],
        idempotency_key=item["idempotency_key"],
        created_at=from_timestamp(item["created_at"]),
    )


def _ticket_from_item(item: Dict[str, Any]) -> Ticket:
    return Ticket(
        ticket_id=item["ticket_id"],
        event_id=item["event_id"],
        seat_id=item["seat_id"],
        holder_id=item["holder_id"],
        qr_code=item["qr_code"],
        order_id=item["order_id"],
        created_at=from_timestamp(item["created_at"]),
    )


def _seat_from_item(item: Dict[str, Any]) -> Seat:
    return Seat(
        seat_id=item["seat_id"],
        section=item["section"],
        row=item["row"],
        number=item["number"],
        price=_number(item["price"]),
        is_accessible=bool(item.get("is_accessible", False)),
    )


def _event_from_item(item: Dict[str, Any]) -> Event:
    return Event(
        event_id=item["event_id"],
        name=item["name"],
        date=item["date"],
        venue=item["venue"],
        image_url=item.get("image_url", ""),
        status=item.get("status", "active"),
        created_at=from_timestamp(item["created_at"]),
    )


class DynamoDBInventoryStore(InventoryStore):
    """Single-table DynamoDB backend.

    Every write that can race is a conditional write, so the guarantees
    hold across any number of API processes sharing the table.
    """

    def __init__(self, client: DynamoDBClient):
        self.client = client

    def _check(self, result: Dict[str, Any], action: str) -> Dict[str, Any]:
        if result["status"] == "error":
            logger.error(f"DynamoDB {action} failed: {result['error']}")
            raise StoreUnavailable(f"Failed to {action}. Please retry.")
        return result

    def _scan(self, record_type: str, filter_expression: str = "",
              values: Optional[Dict[str, Any]] = None, names: Optional[Dict[str, str]] = None,
              action: str = "scan records") -> List[Dict[str, Any]]:
        expression = "record_type = :record_type"
        if filter_expression:
            expression = f"{expression} AND {filter_expression}"
        expression_values = {":record_type": record_type}
        expression_values.update(values or {})
        result = self._check(
            self.client.scan_items(expression, expression_values, names), action
        )
        return result["items"]

    # Inventory

    def get_inventory(self, event_id: str) -> List[SeatInventory]:
        result = self._check(
            self.client.query_items(event_id, "SEAT#"), "fetch seat inventory"
        )
        return [_inventory_from_item(item) for item in result["items"]]

    def get_inventory_row(self, event_id: str, seat_id: str) -> Optional[SeatInventory]:
        result = self._check(
            self.client.get_item(event_id, seat_sort_key(seat_id)), "fetch seat inventory"
        )
        if result["status"] == "not_found":
            return None
        return _inventory_from_item(result["item"])

    def list_all_inventory(self) -> List[SeatInventory]:
        items = self._scan("INVENTORY", action="scan seat inventory")
        return [_inventory_from_item(item) for item in items]

    def compare_and_set_status(self, event_id: str, seat_id: str,
                               expected_status: SeatStatus, new_status: SeatStatus,
                               hold_id: Optional[str] = None, holder_id: Optional[str] = None,
                               expected_hold_id: Optional[str] = None) -> bool:
        values = {
            ":new_status": new_status.value,
            ":expected_status": expected_status.value,
            ":updated_at": to_timestamp(utc_now()),
        }
        if new_status == SeatStatus.HELD:
            update_expression = (
                "SET #status = :new_status, hold_id = :hold_id, "
                "holder_id = :holder_id, updated_at = :updated_at"
            )
            values[":hold_id"] = hold_id
            values[":holder_id"] = holder_id
        else:
            update_expression = "SET #status = :new_status, updated_at = :updated_at REMOVE hold_id, holder_id"

        condition_expression = "attribute_exists(pk) AND #status = :expected_status"
        if expected_hold_id is not None:
            condition_expression += " AND hold_id = :expected_hold_id"
            values[":expected_hold_id"] = expected_hold_id

        result = self.client.update_item_conditional(
            event_id, seat_sort_key(seat_id),
            update_expression, condition_expression, values, STATUS_NAMES
        )
        if result["status"] == "error" and result.get("code") == CONDITIONAL_CHECK_FAILED:
            return False
        self._check(result, "update seat status")
        return True

    def init_inventory(self, event_id: str, seat_ids: List[str]) -> int:
        created = 0
        current_time = to_timestamp(utc_now())
        for seat_id in seat_ids:
            result = self.client.put_item(
                {
                    "pk": event_id,
                    "sk": seat_sort_key(seat_id),
                    "record_type": "INVENTORY",
                    "event_id": event_id,
                    "seat_id": seat_id,
                    "status": SeatStatus.AVAILABLE.value,
                    "updated_at": current_time,
                },
                condition_expression="attribute_not_exists(pk)",
            )
            if result["status"] == "error" and result.get("code") == CONDITIONAL_CHECK_FAILED:
                continue  # Row already exists; never reset live inventory
            self._check(result, "create seat inventory")
            created += 1
        return created

    # Holds

    def put_hold(self, hold: Hold) -> None:
        item = {
            "pk": hold.hold_id,
            "sk": "HOLD",
            "record_type": "HOLD",
            "hold_id": hold.hold_id,
            "event_id": hold.event_id,
            "seat_ids": list(hold.seat_ids),
            "holder_id": hold.holder_id,
            "expire_at": to_timestamp(hold.expire_at),
            "status": hold.status.value,
            "created_at": to_timestamp(hold.created_at),
        }
        self._check(
            self.client.put_item(item, condition_expression="attribute_not_exists(pk)"),
            "create hold",
        )

    def get_hold(self, hold_id: str) -> Optional[Hold]:
        result = self._check(self.client.get_item(hold_id, "HOLD"), "fetch hold")
        if result["status"] == "not_found":
            return None
        return _hold_from_item(result["item"])

    def transition_hold(self, hold_id: str, expected_status: HoldStatus,
                        new_status: HoldStatus) -> bool:
        result = self.client.update_item_conditional(
            hold_id, "HOLD",
            "SET #status = :new_status, updated_at = :updated_at",
            "attribute_exists(pk) AND #status = :expected_status",
            {
                ":new_status": new_status.value,
                ":expected_status": expected_status.value,
                ":updated_at": to_timestamp(utc_now()),
            },
            STATUS_NAMES,
        )
        if result["status"] == "error" and result.get("code") == CONDITIONAL_CHECK_FAILED:
            return False
        self._check(result, "update hold status")
        return True

    def list_holds(self, status: Optional[HoldStatus] = None,
                   holder_id: Optional[str] = None) -> List[Hold]:
        clauses = []
        values = {}
        names = None
        if status is not None:
            clauses.append("#status = :status")
            values[":status"] = status.value
            names = STATUS_NAMES
        if holder_id is not None:
            clauses.append("holder_id = :holder_id")
            values[":holder_id"] = holder_id
        items = self._scan("HOLD", " AND ".join(clauses), values, names, "scan holds")
        holds = [_hold_from_item(item) for item in items]
        holds.sort(key=lambda h: h.created_at, reverse=True)
        return holds

    def find_expired_holds(self, now: datetime) -> List[Hold]:
        items = self._scan(
            "HOLD",
            "#status = :active AND expire_at < :now",
            {":active": HoldStatus.ACTIVE.value, ":now": to_timestamp(now)},
            STATUS_NAMES,
            "scan expired holds",
        )
        return [_hold_from_item(item) for item in items]

    # Settlement

    def commit_settlement(self, hold: Hold, order: Order, tickets: List[Ticket],
                          now: datetime) -> None:
        transact_items = create_settlement_transaction_items(
            self.client.table_name, hold, order, tickets, now
        )
        result = self.client.transact_write(transact_items)
        if result["status"] == "success":
            return

        if result.get("code") == TRANSACTION_CANCELED:
            codes = cancellation_codes(result.get("cancellation_reasons"))
            failed = [i for i, code in enumerate(codes) if code == "ConditionalCheckFailed"]
            if IDEMPOTENCY_INDEX in failed:
                raise DuplicateIdempotencyKey(order.idempotency_key)
            if HOLD_INDEX in failed:
                raise HoldNotActive(hold.hold_id)
            seat_failures = [
                hold.seat_ids[i - FIRST_SEAT_INDEX]
                for i in failed
                if FIRST_SEAT_INDEX <= i < FIRST_SEAT_INDEX + len(hold.seat_ids)
            ]
            if seat_failures:
                raise InventoryGuardFailed(seat_failures)

        # TransactionConflict, throttling and network errors are all retryable
        self._check(result, "settle hold")

    def get_order_by_idempotency_key(self, idempotency_key: str) -> Optional[Order]:
        result = self._check(
            self.client.get_item(idempotency_pk(idempotency_key), "IDEMPOTENCY"),
            "fetch idempotency key",
        )
        if result["status"] == "not_found":
            return None
        order_id = result["item"]["order_id"]
        order_result = self._check(self.client.get_item(order_id, "ORDER"), "fetch order")
        if order_result["status"] == "not_found":
            return None
        return _order_from_item(order_result["item"])

    def get_tickets_for_order(self, order_id: str) -> List[Ticket]:
        # Tickets share the order's partition, so one consistent query sees them all
        result = self._check(
            self.client.query_items(order_id, "TICKET#"), "fetch order tickets"
        )
        return [_ticket_from_item(item) for item in result["items"]]

    def list_orders(self, holder_id: Optional[str] = None) -> List[Order]:
        if holder_id is None:
            items = self._scan("ORDER", action="scan orders")
        else:
            items = self._scan(
                "ORDER", "holder_id = :holder_id", {":holder_id": holder_id}, action="scan orders"
            )
        orders = [_order_from_item(item) for item in items]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def list_tickets(self, holder_id: Optional[str] = None) -> List[Ticket]:
        if holder_id is None:
            items = self._scan("TICKET", action="scan tickets")
        else:
            items = self._scan(
                "TICKET", "holder_id = :holder_id", {":holder_id": holder_id}, action="scan tickets"
            )
        tickets = [_ticket_from_item(item) for item in items]
        tickets.sort(key=lambda t: t.created_at, reverse=True)
        return tickets

    # Catalog

    def put_seats(self, seats: List[Seat]) -> int:
        inserted = 0
        for seat in seats:
            result = self.client.put_item(
                {
                    "pk": CATALOG_PK,
                    "sk": seat_sort_key(seat.seat_id),
                    "record_type": "SEAT",
                    "seat_id": seat.seat_id,
                    "section": seat.section,
                    "row": seat.row,
                    "number": seat.number,
                    "price": to_decimal(seat.price),
                    "is_accessible": seat.is_accessible,
                },
                condition_expression="attribute_not_exists(pk)",
            )
            if result["status"] == "error" and result.get("code") == CONDITIONAL_CHECK_FAILED:
                continue  # Catalog seats are immutable once loaded
            self._check(result, "load seat catalog")
            inserted += 1
        return inserted

    def list_seats(self) -> List[Seat]:
        result = self._check(self.client.query_items(CATALOG_PK, "SEAT#"), "fetch seat catalog")
        seats = [_seat_from_item(item) for item in result["items"]]
        seats.sort(key=lambda s: (s.section, s.row, s.number))
        return seats

    def get_seat(self, seat_id: str) -> Optional[Seat]:
        result = self._check(
            self.client.get_item(CATALOG_PK, seat_sort_key(seat_id)), "fetch seat"
        )
        if result["status"] == "not_found":
            return None
        return _seat_from_item(result["item"])

    def put_event(self, event: Event) -> None:
        item = {
            "pk": event.event_id,
            "sk": "EVENT",
            "record_type": "EVENT",
            "event_id": event.event_id,
            "name": event.name,
            "date": event.date,
            "venue": event.venue,
            "image_url": event.image_url,
            "status": event.status,
            "created_at": to_timestamp(event.created_at),
        }
        self._check(self.client.put_item(item), "create event")

    def get_event(self, event_id: str) -> Optional[Event]:
        result = self._check(self.client.get_item(event_id, "EVENT"), "fetch event")
        if result["status"] == "not_found":
            return None
        return _event_from_item(result["item"])

    def list_events(self) -> List[Event]:
        items = self._scan("EVENT", action="scan events")
        return [_event_from_item(item) for item in items]
