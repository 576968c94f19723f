from fastapi import APIRouter, HTTPException, Path
from starlette.concurrency import run_in_threadpool

from app.dependencies import settlement_engine
from app.errors import SeatLockError
from app.models.order import ConfirmRequest, ConfirmResponse

router = APIRouter(tags=["seat-booking"])


@router.post("/holds/{hold_id}/confirm", response_model=ConfirmResponse)
async def confirm_hold(
    confirm_request: ConfirmRequest,
    hold_id: str = Path(..., description="The hold ID"),
):
    """Settle a hold into a paid order and ticket.

    Retrying with the same idempotency key after a network failure returns
    the original ticket instead of charging again.
    """
    try:
        result = await run_in_threadpool(
            settlement_engine.confirm_hold, hold_id, confirm_request.idempotency_key
        )
        return ConfirmResponse(
            ticket=result.ticket,
            tickets=result.tickets,
            order=result.order,
            replayed=result.replayed,
        )

    except (HTTPException, SeatLockError):
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}. It is safe to retry this payment."
        )
