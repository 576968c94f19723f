from typing import Optional

from fastapi import APIRouter, Query
from starlette.concurrency import run_in_threadpool

from app.dependencies import expiry_sweeper, query_facade
from app.models.admin import AdminSnapshot

router = APIRouter(tags=["admin"])


@router.get("/admin/snapshot", response_model=AdminSnapshot)
async def get_admin_snapshot(
    event_id: Optional[str] = Query(None, description="Restrict the snapshot to one event")
):
    """Active and expired holds, sold seats and seat counts"""
    return await run_in_threadpool(query_facade.admin_snapshot, event_id)


@router.post("/admin/sweep")
async def run_sweep():
    """Run one expiry sweep now instead of waiting for the next tick"""
    released = await expiry_sweeper.sweep_once_async()
    return {"released": released}
