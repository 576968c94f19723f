from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, model_validator


class HoldStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CONFIRMED = "CONFIRMED"


class Hold(BaseModel):
    hold_id: str
    event_id: str
    seat_ids: List[str]
    holder_id: str
    expire_at: datetime
    status: HoldStatus
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expire_at


class HoldCreateRequest(BaseModel):
    event_id: str
    holder_id: str
    seat_id: Optional[str] = None
    seat_ids: Optional[List[str]] = None

    @model_validator(mode="after")
    def check_seats(self):
        if not self.seat_id and not self.seat_ids:
            raise ValueError("Either seat_id or seat_ids must be provided")
        if self.seat_id and self.seat_ids:
            raise ValueError("Provide seat_id or seat_ids, not both")
        return self

    def requested_seats(self) -> List[str]:
        return [self.seat_id] if self.seat_id else list(self.seat_ids)


class HoldCreateResponse(BaseModel):
    hold_id: str
    seat_ids: List[str]
    expire_at: int  # Epoch milliseconds


class HoldResponse(BaseModel):
    hold_id: str
    event_id: str
    seat_ids: List[str]
    holder_id: str
    status: HoldStatus
    expire_at: int  # Epoch milliseconds
    created_at: datetime


class ReleaseResponse(BaseModel):
    ok: bool = True
