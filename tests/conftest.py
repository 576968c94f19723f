import os
from datetime import datetime, timedelta, timezone

import pytest

# Tests always run against the in-memory store, without the background sweeper
os.environ["STORE_BACKEND"] = "memory"
os.environ["SWEEPER_ENABLED"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"

from app.models.event import EventCreate  # noqa: E402
from app.models.seat import SeatCreate  # noqa: E402
from app.services.catalog import CatalogService  # noqa: E402
from app.services.hold_manager import HoldManager  # noqa: E402
from app.services.settlement import SettlementEngine  # noqa: E402
from app.services.sweeper import ExpirySweeper  # noqa: E402
from app.store.memory import InMemoryInventoryStore  # noqa: E402


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 11, 23, 15, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


TEST_SEATS = [
    SeatCreate(seat_id="A101", section="A", row="1", number="01", price=99),
    SeatCreate(seat_id="A102", section="A", row="1", number="02", price=99),
    SeatCreate(seat_id="B201", section="B", row="2", number="01", price=149, is_accessible=True),
    SeatCreate(seat_id="C301", section="C", row="3", number="01", price=299),
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def core(clock):
    """A fresh store with the test catalog, one event and all core services"""
    store = InMemoryInventoryStore()
    catalog = CatalogService(store)
    catalog.load_seats(TEST_SEATS)
    catalog.create_event(
        EventCreate(name="Test Grand Prix", date="Nov 23, 2025", venue="Test Circuit"),
        event_id="event1",
    )
    holds = HoldManager(store, hold_duration_seconds=600, clock=clock)
    settlement = SettlementEngine(store, holds, service_fee=5, clock=clock)
    sweeper = ExpirySweeper(store, holds, interval_seconds=15, clock=clock)
    return {
        "store": store,
        "catalog": catalog,
        "holds": holds,
        "settlement": settlement,
        "sweeper": sweeper,
        "clock": clock,
    }
