from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class SeatStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    HELD = "HELD"
    SOLD = "SOLD"


class SeatCreate(BaseModel):
    seat_id: str
    section: str
    row: str
    number: str
    price: float
    is_accessible: bool = False


class Seat(BaseModel):
    seat_id: str
    section: str
    row: str
    number: str
    price: float
    is_accessible: bool = False


class SeatCatalogCreate(BaseModel):
    seats: List[SeatCreate]


class SeatInventory(BaseModel):
    event_id: str
    seat_id: str
    status: SeatStatus  # AVAILABLE, HELD, SOLD
    hold_id: Optional[str] = None
    holder_id: Optional[str] = None
    updated_at: Optional[datetime] = None


class SeatMapResponse(BaseModel):
    event_id: str
    seats: List[Seat]
    inventory: List[SeatInventory]
