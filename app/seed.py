"""Demo catalog: two race-weekend sessions over a 200-seat grandstand."""

import random
from typing import List, Optional

from app.logger_config import logger
from app.models.event import EventCreate
from app.models.seat import SeatCreate
from app.services.catalog import CatalogService

SECTIONS = ["A", "B", "C", "D", "E"]
SECTION_PRICES = [299, 199, 149, 99, 79]
ROWS_PER_SECTION = 8
SEATS_PER_ROW = 5
ACCESSIBLE_RATIO = 0.05

DEMO_EVENTS = [
    (
        "f1-gp-2025",
        EventCreate(
            name="F1 Grand Prix — Sunday",
            date="Nov 23, 2025 • 3:00 PM",
            venue="Las Vegas Street Circuit",
            image_url="/f1.jpg",
        ),
    ),
    (
        "qualifying-2025",
        EventCreate(
            name="F1 Qualifying — Las Vegas 2025",
            date="Nov 21, 2025 • 10:00 AM",
            venue="Las Vegas Street Circuit",
            image_url="/f1-lights.jpg",
        ),
    ),
]


def generate_seats(rng: Optional[random.Random] = None) -> List[SeatCreate]:
    # Fixed seed so re-seeding a persistent table keeps the same accessible seats
    rng = rng or random.Random(2025)
    seats = []
    for section, price in zip(SECTIONS, SECTION_PRICES):
        for row in range(1, ROWS_PER_SECTION + 1):
            for number in range(1, SEATS_PER_ROW + 1):
                seats.append(SeatCreate(
                    seat_id=f"{section}{row}-{number}",
                    section=section,
                    row=str(row),
                    number=str(number),
                    price=price,
                    is_accessible=rng.random() < ACCESSIBLE_RATIO,
                ))
    return seats


def seed_demo_data(catalog: CatalogService, rng: Optional[random.Random] = None) -> int:
    """Load the demo catalog and events; events that already exist are left alone"""
    catalog.load_seats(generate_seats(rng))
    created = 0
    for event_id, event_data in DEMO_EVENTS:
        if catalog.store.get_event(event_id) is not None:
            continue
        catalog.create_event(event_data, event_id=event_id)
        created += 1
    logger.info(f"Demo data seeded ({created} new events)")
    return created
