import threading

import pytest

from app.errors import HolderHasActiveHold, SeatUnavailable
from app.models.hold import HoldStatus
from app.models.seat import SeatStatus
from app.services.hold_manager import HoldManager


def race(workers):
    """Start every worker at the same instant and collect outcomes"""
    barrier = threading.Barrier(len(workers))
    results = [None] * len(workers)

    def run(index, worker):
        barrier.wait()
        try:
            results[index] = worker()
        except Exception as e:
            results[index] = e

    threads = [threading.Thread(target=run, args=(i, w)) for i, w in enumerate(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


class TestCreateHold:
    def test_hold_expires_after_ten_minutes(self, core):
        hold = core["holds"].create_hold("event1", "A101", "user1")

        assert hold.status == HoldStatus.ACTIVE
        assert hold.seat_ids == ["A101"]
        assert (hold.expire_at - core["clock"]()).total_seconds() == 600

        row = core["store"].get_inventory_row("event1", "A101")
        assert row.status == SeatStatus.HELD
        assert row.hold_id == hold.hold_id
        assert row.holder_id == "user1"
        assert core["store"].get_hold(hold.hold_id) == hold

    def test_two_buyers_one_seat(self, core):
        """Exactly one of two simultaneous holds on A101 wins"""
        holds = core["holds"]
        results = race([
            lambda: holds.create_hold("event1", "A101", "userA"),
            lambda: holds.create_hold("event1", "A101", "userB"),
        ])

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], SeatUnavailable)

        row = core["store"].get_inventory_row("event1", "A101")
        assert row.hold_id == winners[0].hold_id

    def test_many_buyers_one_seat(self, core):
        holds = core["holds"]
        results = race([
            (lambda i=i: holds.create_hold("event1", "B201", f"user{i}")) for i in range(16)
        ])

        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(r, SeatUnavailable) for r in results if r not in winners)
        assert len(core["store"].list_holds(status=HoldStatus.ACTIVE)) == 1

    def test_lost_cas_race_is_seat_unavailable(self, core):
        """The availability read can be stale; the compare-and-set decides"""
        store = core["store"]
        real_cas = store.compare_and_set_status

        def sneaky_cas(event_id, seat_id, expected_status, new_status, **kwargs):
            # Another buyer slips in between the read and the write
            real_cas(event_id, seat_id, SeatStatus.AVAILABLE, SeatStatus.HELD,
                     hold_id="hold-other", holder_id="other")
            return real_cas(event_id, seat_id, expected_status, new_status, **kwargs)

        store.compare_and_set_status = sneaky_cas
        with pytest.raises(SeatUnavailable):
            core["holds"].create_hold("event1", "A101", "user1")
        store.compare_and_set_status = real_cas

        assert store.get_inventory_row("event1", "A101").hold_id == "hold-other"
        assert store.list_holds() == []

    def test_sold_seat_unavailable(self, core):
        core["store"].compare_and_set_status("event1", "A101", SeatStatus.AVAILABLE, SeatStatus.HELD, hold_id="h")
        core["store"].compare_and_set_status("event1", "A101", SeatStatus.HELD, SeatStatus.SOLD)

        with pytest.raises(SeatUnavailable):
            core["holds"].create_hold("event1", "A101", "user1")

    def test_unknown_seat_unavailable(self, core):
        with pytest.raises(SeatUnavailable):
            core["holds"].create_hold("event1", "Z999", "user1")

    def test_default_limit_is_one_seat(self, core):
        with pytest.raises(SeatUnavailable):
            core["holds"].create_hold("event1", ["A101", "A102"], "user1")


class TestMultiSeatHolds:
    @pytest.fixture
    def holds(self, core):
        return HoldManager(core["store"], max_seats_per_hold=4, clock=core["clock"])

    def test_all_seats_claimed(self, core, holds):
        hold = holds.create_hold("event1", ["A102", "A101", "A101"], "user1")

        assert hold.seat_ids == ["A101", "A102"]
        for seat_id in ("A101", "A102"):
            assert core["store"].get_inventory_row("event1", seat_id).hold_id == hold.hold_id

    def test_partial_conflict_claims_nothing(self, core, holds):
        store = core["store"]
        real_cas = store.compare_and_set_status

        def cas_losing_a102(event_id, seat_id, expected_status, new_status, **kwargs):
            if seat_id == "A102" and new_status == SeatStatus.HELD:
                return False
            return real_cas(event_id, seat_id, expected_status, new_status, **kwargs)

        store.compare_and_set_status = cas_losing_a102
        with pytest.raises(SeatUnavailable):
            holds.create_hold("event1", ["A101", "A102"], "user1")
        store.compare_and_set_status = real_cas

        # A101 was claimed first and handed back
        assert store.get_inventory_row("event1", "A101").status == SeatStatus.AVAILABLE
        assert store.get_inventory_row("event1", "A101").hold_id is None
        assert store.list_holds() == []

    def test_unavailable_seat_in_set(self, core, holds):
        core["holds"].create_hold("event1", "A102", "other")

        with pytest.raises(SeatUnavailable):
            holds.create_hold("event1", ["A101", "A102"], "user1")

        assert core["store"].get_inventory_row("event1", "A101").status == SeatStatus.AVAILABLE


class TestHolderPolicy:
    def test_allow_multiple_by_default(self, core):
        core["holds"].create_hold("event1", "A101", "user1")
        core["holds"].create_hold("event1", "A102", "user1")

        assert len(core["store"].list_holds(status=HoldStatus.ACTIVE, holder_id="user1")) == 2

    def test_reject_policy(self, core):
        holds = HoldManager(core["store"], holder_policy="reject", clock=core["clock"])
        holds.create_hold("event1", "A101", "user1")

        with pytest.raises(HolderHasActiveHold):
            holds.create_hold("event1", "A102", "user1")

        assert core["store"].get_inventory_row("event1", "A102").status == SeatStatus.AVAILABLE

    def test_reject_policy_ignores_lapsed_holds(self, core):
        holds = HoldManager(core["store"], holder_policy="reject", clock=core["clock"])
        holds.create_hold("event1", "A101", "user1")
        core["clock"].advance(601)

        hold = holds.create_hold("event1", "A102", "user1")
        assert hold.status == HoldStatus.ACTIVE

    def test_replace_policy(self, core):
        holds = HoldManager(core["store"], holder_policy="replace", clock=core["clock"])
        first = holds.create_hold("event1", "A101", "user1")
        second = holds.create_hold("event1", "A102", "user1")

        assert core["store"].get_hold(first.hold_id).status == HoldStatus.EXPIRED
        assert core["store"].get_inventory_row("event1", "A101").status == SeatStatus.AVAILABLE
        assert core["store"].get_hold(second.hold_id).status == HoldStatus.ACTIVE


class TestReleaseHold:
    def test_release_frees_seat(self, core):
        hold = core["holds"].create_hold("event1", "A101", "user1")

        core["holds"].release_hold(hold.hold_id)

        assert core["store"].get_hold(hold.hold_id).status == HoldStatus.EXPIRED
        row = core["store"].get_inventory_row("event1", "A101")
        assert row.status == SeatStatus.AVAILABLE
        assert row.hold_id is None
        assert row.holder_id is None

    def test_release_is_idempotent(self, core):
        hold = core["holds"].create_hold("event1", "A101", "user1")
        core["holds"].release_hold(hold.hold_id)
        other = core["holds"].create_hold("event1", "A101", "user2")

        # A stale second release must not touch the new holder's claim
        core["holds"].release_hold(hold.hold_id)

        row = core["store"].get_inventory_row("event1", "A101")
        assert row.status == SeatStatus.HELD
        assert row.hold_id == other.hold_id

    def test_release_unknown_hold(self, core):
        core["holds"].release_hold("hold-nonexistent")

    def test_release_confirmed_hold_is_noop(self, core):
        hold = core["holds"].create_hold("event1", "A101", "user1")
        core["settlement"].confirm_hold(hold.hold_id, "req-1")

        core["holds"].release_hold(hold.hold_id)

        assert core["store"].get_hold(hold.hold_id).status == HoldStatus.CONFIRMED
        assert core["store"].get_inventory_row("event1", "A101").status == SeatStatus.SOLD

    def test_release_heals_seats_of_expired_hold(self, core):
        """An EXPIRED hold whose seat reset never happened gets cleaned up"""
        hold = core["holds"].create_hold("event1", "A101", "user1")
        core["store"].transition_hold(hold.hold_id, HoldStatus.ACTIVE, HoldStatus.EXPIRED)

        core["holds"].release_hold(hold.hold_id)

        assert core["store"].get_inventory_row("event1", "A101").status == SeatStatus.AVAILABLE
