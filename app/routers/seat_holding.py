from fastapi import APIRouter, HTTPException, Path
from starlette.concurrency import run_in_threadpool

from app.dependencies import hold_manager, store
from app.errors import NotFound, SeatLockError
from app.models.hold import (HoldCreateRequest, HoldCreateResponse, HoldResponse,
                             ReleaseResponse)
from app.utils import to_epoch_ms

router = APIRouter(tags=["seat-holding"])


@router.post("/holds", response_model=HoldCreateResponse)
async def create_hold(hold_request: HoldCreateRequest):
    """Place a time-boxed exclusive hold on a seat"""
    try:
        hold = await run_in_threadpool(
            hold_manager.create_hold,
            hold_request.event_id,
            hold_request.requested_seats(),
            hold_request.holder_id,
        )
        return HoldCreateResponse(
            hold_id=hold.hold_id,
            seat_ids=hold.seat_ids,
            expire_at=to_epoch_ms(hold.expire_at),
        )

    except (HTTPException, SeatLockError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}"
        )


@router.post("/holds/{hold_id}/release", response_model=ReleaseResponse)
async def release_hold(hold_id: str = Path(..., description="The hold ID")):
    """Release a hold; succeeds even if the hold is unknown or already finished"""
    try:
        await run_in_threadpool(hold_manager.release_hold, hold_id)
        return ReleaseResponse(ok=True)

    except (HTTPException, SeatLockError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}"
        )


@router.get("/holds/{hold_id}", response_model=HoldResponse)
async def get_hold(hold_id: str = Path(..., description="The hold ID")):
    """Get a hold, e.g. to drive the checkout countdown"""
    hold = await run_in_threadpool(store.get_hold, hold_id)
    if hold is None:
        raise NotFound(f"Hold with ID {hold_id} not found")

    return HoldResponse(
        hold_id=hold.hold_id,
        event_id=hold.event_id,
        seat_ids=hold.seat_ids,
        holder_id=hold.holder_id,
        status=hold.status,
        expire_at=to_epoch_ms(hold.expire_at),
        created_at=hold.created_at,
    )
