from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class EventCreate(BaseModel):
    name: str
    date: str  # Display date, e.g. "Nov 23, 2025 • 3:00 PM"
    venue: str
    image_url: str = ""
    # Seats to open for sale; defaults to the whole catalog
    seat_ids: Optional[List[str]] = None


class Event(BaseModel):
    event_id: str
    name: str
    date: str
    venue: str
    image_url: str = ""
    status: str = "active"  # active, inactive
    created_at: datetime


class EventResponse(BaseModel):
    event_id: str
    name: str
    date: str
    venue: str
    image_url: str
    status: str
    created_at: datetime
    seats_created: Optional[int] = None
