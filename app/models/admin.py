from typing import List

from pydantic import BaseModel

from app.models.hold import Hold
from app.models.seat import SeatInventory


class AdminMetrics(BaseModel):
    total_seats: int
    sold_seats: int
    held_seats: int
    available_seats: int


class AdminSnapshot(BaseModel):
    active_holds: List[Hold]
    sold_seats: List[SeatInventory]
    expired_holds: List[Hold]
    metrics: AdminMetrics
