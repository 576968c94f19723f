import asyncio

from app.models.hold import HoldStatus
from app.models.seat import SeatStatus
from app.services.sweeper import ExpirySweeper


def test_sweep_releases_only_lapsed_holds(core):
    old = core["holds"].create_hold("event1", "A101", "user1")
    core["clock"].advance(300)
    fresh = core["holds"].create_hold("event1", "A102", "user2")
    core["clock"].advance(301)

    released = core["sweeper"].sweep_once()

    assert released == 1
    assert core["store"].get_hold(old.hold_id).status == HoldStatus.EXPIRED
    assert core["store"].get_inventory_row("event1", "A101").status == SeatStatus.AVAILABLE
    assert core["store"].get_hold(fresh.hold_id).status == HoldStatus.ACTIVE
    assert core["store"].get_inventory_row("event1", "A102").status == SeatStatus.HELD


def test_sweep_with_nothing_to_do(core):
    core["holds"].create_hold("event1", "A101", "user1")

    assert core["sweeper"].sweep_once() == 0


def test_sweep_twice_is_harmless(core):
    core["holds"].create_hold("event1", "A101", "user1")
    core["clock"].advance(601)

    assert core["sweeper"].sweep_once() == 1
    assert core["sweeper"].sweep_once() == 0


def test_swept_seat_can_be_held_again(core):
    core["holds"].create_hold("event1", "A101", "user1")
    core["clock"].advance(601)
    core["sweeper"].sweep_once()

    hold = core["holds"].create_hold("event1", "A101", "user2")

    assert core["store"].get_inventory_row("event1", "A101").hold_id == hold.hold_id


def test_async_sweep(core):
    for seat_id in ("A101", "A102", "B201"):
        core["holds"].create_hold("event1", seat_id, f"user-{seat_id}")
    core["clock"].advance(601)

    released = asyncio.run(core["sweeper"].sweep_once_async())

    assert released == 3
    assert core["store"].list_holds(status=HoldStatus.ACTIVE) == []
    assert all(row.status == SeatStatus.AVAILABLE for row in core["store"].get_inventory("event1"))


def test_failed_release_does_not_stop_sweep(core):
    first = core["holds"].create_hold("event1", "A101", "user1")
    second = core["holds"].create_hold("event1", "A102", "user2")
    core["clock"].advance(601)

    real_release = core["holds"].release_hold

    def flaky_release(hold_id):
        if hold_id == first.hold_id:
            raise RuntimeError("store timeout")
        real_release(hold_id)

    core["holds"].release_hold = flaky_release

    assert core["sweeper"].sweep_once() == 1
    assert core["store"].get_hold(first.hold_id).status == HoldStatus.ACTIVE
    assert core["store"].get_hold(second.hold_id).status == HoldStatus.EXPIRED

    # The next tick picks up what the last one missed
    core["holds"].release_hold = real_release
    assert core["sweeper"].sweep_once() == 1
    assert core["store"].get_hold(first.hold_id).status == HoldStatus.EXPIRED


def test_background_task_start_stop(core):
    sweeper = ExpirySweeper(core["store"], core["holds"], interval_seconds=0.01, clock=core["clock"])
    core["holds"].create_hold("event1", "A101", "user1")
    core["clock"].advance(601)

    async def run():
        sweeper.start()
        for _ in range(200):
            if not core["store"].list_holds(status=HoldStatus.ACTIVE):
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

    asyncio.run(run())

    assert core["store"].list_holds(status=HoldStatus.ACTIVE) == []
    assert core["store"].get_inventory_row("event1", "A101").status == SeatStatus.AVAILABLE
