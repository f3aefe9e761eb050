"""Sync API: trigger pull, push-back and full reconciliation cycles."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from canteen_pos.api.dependencies import get_reconciler, http_error
from canteen_pos.errors import CanteenError
from canteen_pos.services.sync import SyncReconciler


router = APIRouter(prefix="/api/sync", tags=["sync"])


class PullRequest(BaseModel):
    """Optional ids of cached orders to overwrite with the backend copy."""
    refresh_ids: List[int] = Field(default_factory=list)


@router.post("", summary="Run a full sync cycle")
async def run_sync(reconciler: SyncReconciler = Depends(get_reconciler)):
    """
    Push completed orders and walk-ins, then pull today's orders.

    - **409** when another sync is already running
    """
    try:
        result = await reconciler.run_sync()
    except CanteenError as e:
        raise http_error(e)
    return result.to_dict()


@router.post("/orders/pull", summary="Pull today's orders")
async def pull_orders(
    body: Optional[PullRequest] = None,
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    refresh_ids = body.refresh_ids if body else []
    try:
        result = await reconciler.pull_todays_orders(refresh_ids=refresh_ids)
    except CanteenError as e:
        raise http_error(e)
    return result.to_dict()


@router.post("/orders/push", summary="Push completed orders")
async def push_orders(reconciler: SyncReconciler = Depends(get_reconciler)):
    try:
        result = await reconciler.push_completed_orders()
    except CanteenError as e:
        raise http_error(e)
    return result.to_dict()


@router.post("/walkins/push", summary="Push completed walk-ins")
async def push_walkins(reconciler: SyncReconciler = Depends(get_reconciler)):
    try:
        result = await reconciler.push_completed_walkins()
    except CanteenError as e:
        raise http_error(e)
    return result.to_dict()


@router.post("/menu/{menu_id}", summary="Download a menu")
async def sync_menu(menu_id: int, reconciler: SyncReconciler = Depends(get_reconciler)):
    try:
        return await reconciler.sync_menu(menu_id)
    except CanteenError as e:
        raise http_error(e)


@router.post("/catalog", summary="Refresh the item catalog")
async def refresh_catalog(reconciler: SyncReconciler = Depends(get_reconciler)):
    try:
        stored = await reconciler.refresh_catalog()
    except CanteenError as e:
        raise http_error(e)
    return {"items": stored}
