from datetime import datetime
from typing import Callable, List, Union

from app.errors import HolderHasActiveHold, SeatUnavailable
from app.logger_config import logger
from app.models.hold import Hold, HoldStatus
from app.models.seat import SeatStatus
from app.store.base import InventoryStore
from app.utils import generate_hold_id, get_hold_expiry_time, utc_now


class HoldManager:
    """Grants, tracks and releases time-boxed exclusive claims on seats.

    The availability read in create_hold is only a fast path; the
    compare-and-set in the store is what decides who gets the seat.
    """

    def __init__(self, store: InventoryStore, hold_duration_seconds: int = 600,
                 max_seats_per_hold: int = 1, holder_policy: str = "allow_multiple",
                 clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.hold_duration_seconds = hold_duration_seconds
        self.max_seats_per_hold = max_seats_per_hold
        self.holder_policy = holder_policy
        self.clock = clock

    def create_hold(self, event_id: str, seat_ids: Union[str, List[str]], holder_id: str) -> Hold:
        if isinstance(seat_ids, str):
            seat_ids = [seat_ids]

        # Remove duplicate seats while keeping a stable claim order
        unique_seats = sorted(set(seat_ids))
        if not unique_seats:
            raise SeatUnavailable("No seats requested.")
        if len(unique_seats) > self.max_seats_per_hold:
            raise SeatUnavailable(
                f"A hold may cover at most {self.max_seats_per_hold} seat(s)."
            )

        self._apply_holder_policy(holder_id)

        for seat_id in unique_seats:
            row = self.store.get_inventory_row(event_id, seat_id)
            if row is None or row.status != SeatStatus.AVAILABLE:
                raise SeatUnavailable()

        hold_id = generate_hold_id()
        claimed = []
        for seat_id in unique_seats:
            won = self.store.compare_and_set_status(
                event_id, seat_id,
                expected_status=SeatStatus.AVAILABLE,
                new_status=SeatStatus.HELD,
                hold_id=hold_id,
                holder_id=holder_id,
            )
            if not won:
                logger.debug(f"Lost race for seat {seat_id} of event {event_id} ({holder_id})")
                self._undo_claims(event_id, claimed, hold_id)
                raise SeatUnavailable()
            claimed.append(seat_id)

        now = self.clock()
        hold = Hold(
            hold_id=hold_id,
            event_id=event_id,
            seat_ids=unique_seats,
            holder_id=holder_id,
            expire_at=get_hold_expiry_time(now, self.hold_duration_seconds),
            status=HoldStatus.ACTIVE,
            created_at=now,
        )
        try:
            self.store.put_hold(hold)
        except Exception:
            # Without a hold record nothing could ever release these seats
            self._undo_claims(event_id, claimed, hold_id)
            raise

        logger.info(
            f"Hold {hold_id} created for {holder_id} on {event_id} seats {unique_seats}, "
            f"expires {hold.expire_at.isoformat()}"
        )
        return hold

    def release_hold(self, hold_id: str) -> None:
        """Expire a hold and hand its seats back; safe to call any number of times"""
        hold = self.store.get_hold(hold_id)
        if hold is None:
            logger.debug(f"Release of unknown hold {hold_id} ignored")
            return

        if hold.status == HoldStatus.ACTIVE:
            if not self.store.transition_hold(hold_id, HoldStatus.ACTIVE, HoldStatus.EXPIRED):
                # Someone moved it first; only a settlement leaves seats alone
                hold = self.store.get_hold(hold_id)
                if hold is None or hold.status != HoldStatus.EXPIRED:
                    logger.debug(f"Hold {hold_id} was confirmed before release; nothing to do")
                    return

        if hold.status == HoldStatus.CONFIRMED:
            logger.debug(f"Hold {hold_id} already confirmed; release is a no-op")
            return

        released = []
        for seat_id in hold.seat_ids:
            if self.store.compare_and_set_status(
                hold.event_id, seat_id,
                expected_status=SeatStatus.HELD,
                new_status=SeatStatus.AVAILABLE,
                expected_hold_id=hold_id,
            ):
                released.append(seat_id)

        if released:
            logger.info(f"Hold {hold_id} released seats {released} on {hold.event_id}")

    def _undo_claims(self, event_id: str, seat_ids: List[str], hold_id: str) -> None:
        for seat_id in seat_ids:
            self.store.compare_and_set_status(
                event_id, seat_id,
                expected_status=SeatStatus.HELD,
                new_status=SeatStatus.AVAILABLE,
                expected_hold_id=hold_id,
            )

    def _apply_holder_policy(self, holder_id: str) -> None:
        if self.holder_policy == "allow_multiple":
            return

        now = self.clock()
        active = [
            hold for hold in self.store.list_holds(status=HoldStatus.ACTIVE, holder_id=holder_id)
            if not hold.is_expired(now)
        ]
        if not active:
            return

        if self.holder_policy == "reject":
            raise HolderHasActiveHold(
                f"Holder {holder_id} already has an active hold ({active[0].hold_id}). "
                "Release it before holding another seat."
            )

        # replace
        for hold in active:
            logger.info(f"Releasing hold {hold.hold_id} so {holder_id} can take a new one")
            self.release_hold(hold.hold_id)
