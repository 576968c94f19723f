from datetime import datetime
from typing import Callable, List

from pydantic import BaseModel

from app.errors import (ConsistencyFault, HoldExpired, IdempotencyConflict,
                        StoreUnavailable)
from app.logger_config import logger
from app.models.hold import Hold, HoldStatus
from app.models.order import Order, OrderStatus, Ticket
from app.services.hold_manager import HoldManager
from app.store.base import (DuplicateIdempotencyKey, HoldNotActive,
                            InventoryGuardFailed, InventoryStore)
from app.utils import (generate_order_id, generate_qr_code, generate_ticket_id,
                       utc_now)


class SettlementResult(BaseModel):
    order: Order
    tickets: List[Ticket]
    replayed: bool = False

    @property
    def ticket(self) -> Ticket:
        return self.tickets[0]


class SettlementEngine:
    """Turns an ACTIVE hold into a PAID order and tickets, once per idempotency key.

    The commit is a single atomic store operation guarded on the key, the
    hold status and every seat's link to the hold, so a retry, a concurrent
    duplicate request or a racing sweep can never produce a second order.
    """

    def __init__(self, store: InventoryStore, hold_manager: HoldManager,
                 service_fee: float = 5.0, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.hold_manager = hold_manager
        self.service_fee = service_fee
        self.clock = clock

    def confirm_hold(self, hold_id: str, idempotency_key: str) -> SettlementResult:
        replay = self._replay(hold_id, idempotency_key)
        if replay is not None:
            return replay

        hold = self.store.get_hold(hold_id)
        if hold is None or hold.status != HoldStatus.ACTIVE:
            # A twin request with this key may have settled it since the first lookup
            replay = self._replay(hold_id, idempotency_key)
            if replay is not None:
                return replay
            raise HoldExpired()

        # The sweeper runs on a delay, so an ACTIVE status alone proves nothing
        now = self.clock()
        if hold.is_expired(now):
            logger.info(f"Hold {hold_id} expired at {hold.expire_at.isoformat()}; releasing")
            self.hold_manager.release_hold(hold_id)
            raise HoldExpired()

        order, tickets = self._build_order(hold, idempotency_key, now)

        try:
            self.store.commit_settlement(hold, order, tickets, self.clock())
        except DuplicateIdempotencyKey:
            # A concurrent retry with the same key committed first
            replay = self._replay(hold_id, idempotency_key)
            if replay is None:
                raise StoreUnavailable("Payment is being recorded by another request. Please retry.")
            return replay
        except HoldNotActive:
            replay = self._replay(hold_id, idempotency_key)
            if replay is not None:
                return replay
            logger.info(f"Hold {hold_id} left ACTIVE or expired before settlement committed")
            self.hold_manager.release_hold(hold_id)
            raise HoldExpired()
        except InventoryGuardFailed as e:
            logger.critical(
                f"Consistency fault settling hold {hold_id} (key {idempotency_key}): "
                f"seats {e.seat_ids} on {hold.event_id} are no longer linked to the hold"
            )
            raise ConsistencyFault(
                f"Seats {e.seat_ids} are no longer held by hold {hold_id}. "
                "No payment was recorded."
            )

        logger.info(
            f"Hold {hold_id} settled as order {order.order_id} for {order.holder_id}, "
            f"amount {order.amount}, tickets {[t.ticket_id for t in tickets]}"
        )
        return SettlementResult(order=order, tickets=tickets)

    def _replay(self, hold_id: str, idempotency_key: str):
        existing = self.store.get_order_by_idempotency_key(idempotency_key)
        if existing is None:
            return None
        if existing.hold_id != hold_id:
            raise IdempotencyConflict(
                f"Idempotency key {idempotency_key} was already used for a different hold."
            )
        tickets = self.store.get_tickets_for_order(existing.order_id)
        if len(tickets) != len(existing.seat_ids):
            # The commit is atomic, so a short read means the store is lagging
            raise StoreUnavailable("Payment was recorded but its tickets are not readable yet. Please retry.")
        tickets.sort(key=lambda t: existing.seat_ids.index(t.seat_id)
                     if t.seat_id in existing.seat_ids else len(existing.seat_ids))
        logger.info(f"Replaying settlement of hold {hold_id} for key {idempotency_key}")
        return SettlementResult(order=existing, tickets=tickets, replayed=True)

    def _build_order(self, hold: Hold, idempotency_key: str, now: datetime):
        total = 0.0
        for seat_id in hold.seat_ids:
            seat = self.store.get_seat(seat_id)
            if seat is None:
                raise ConsistencyFault(f"Held seat {seat_id} is missing from the catalog.")
            total += seat.price

        order = Order(
            order_id=generate_order_id(),
            holder_id=hold.holder_id,
            event_id=hold.event_id,
            seat_ids=list(hold.seat_ids),
            hold_id=hold.hold_id,
            amount=round(total + self.service_fee, 2),
            status=OrderStatus.PAID,
            idempotency_key=idempotency_key,
            created_at=now,
        )
        tickets = [
            Ticket(
                ticket_id=generate_ticket_id(),
                event_id=hold.event_id,
                seat_id=seat_id,
                holder_id=hold.holder_id,
                qr_code=generate_qr_code(),
                order_id=order.order_id,
                created_at=now,
            )
            for seat_id in hold.seat_ids
        ]
        return order, tickets
