from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class Order(BaseModel):
    order_id: str
    holder_id: str
    event_id: str
    seat_ids: List[str]
    hold_id: str
    amount: float
    status: OrderStatus
    idempotency_key: str  # Payment request id
    created_at: datetime


class Ticket(BaseModel):
    ticket_id: str
    event_id: str
    seat_id: str
    holder_id: str
    qr_code: str
    order_id: str
    created_at: datetime


class ConfirmRequest(BaseModel):
    idempotency_key: str = Field(..., min_length=1, description="Client payment request id")


class ConfirmResponse(BaseModel):
    ticket: Ticket
    tickets: List[Ticket]
    order: Order
    replayed: bool = False
