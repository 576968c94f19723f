from typing import List

from fastapi import APIRouter, Path
from starlette.concurrency import run_in_threadpool

from app.dependencies import query_facade
from app.models.order import Order, Ticket

router = APIRouter(tags=["holders"])


@router.get("/holders/{holder_id}/orders", response_model=List[Order])
async def get_holder_orders(holder_id: str = Path(..., description="The holder ID")):
    """Get all orders for a holder, most recent first"""
    return await run_in_threadpool(query_facade.orders_for, holder_id)


@router.get("/holders/{holder_id}/tickets", response_model=List[Ticket])
async def get_holder_tickets(holder_id: str = Path(..., description="The holder ID")):
    """Get all tickets for a holder, most recent first"""
    return await run_in_threadpool(query_facade.tickets_for, holder_id)
