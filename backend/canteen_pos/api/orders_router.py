"""Local orders, completion and dashboard API."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from canteen_pos.api.dependencies import (
    get_gateway,
    get_storage,
    get_summary,
    get_workflow,
    http_error,
)
from canteen_pos.errors import CanteenError
from canteen_pos.gateway import OrderGateway
from canteen_pos.services.completion import OrderCompletionWorkflow
from canteen_pos.services.summary import SummaryAggregator
from canteen_pos.storage import Storage


router = APIRouter(prefix="/api", tags=["orders"])


@router.get("/orders", summary="List cached orders")
async def list_orders(
    status: Optional[str] = Query(None, description="placed / completed / cancelled"),
    storage: Storage = Depends(get_storage),
):
    try:
        return storage.list_orders(status=status)
    except CanteenError as e:
        raise http_error(e)


@router.get("/orders/{identifier}", summary="Look up an order")
async def get_order(identifier: str, workflow: OrderCompletionWorkflow = Depends(get_workflow)):
    """Accepts the numeric id or the printed NV-prefixed form."""
    try:
        order, items = workflow.lookup_order(identifier)
    except CanteenError as e:
        raise http_error(e)
    return {"order": order, "items": items}


@router.post("/orders/{identifier}/complete", summary="Print and complete an order")
async def complete_order(
    identifier: str,
    workflow: OrderCompletionWorkflow = Depends(get_workflow),
    summary: SummaryAggregator = Depends(get_summary),
):
    try:
        result = await workflow.complete_order(identifier)
        summary.refresh()
    except CanteenError as e:
        raise http_error(e)
    return result.to_dict()


@router.get("/summary/items", summary="Per-item quantities")
async def item_summary(summary: SummaryAggregator = Depends(get_summary)):
    try:
        return [row.to_dict() for row in summary.refresh()]
    except CanteenError as e:
        raise http_error(e)


@router.get("/summary/counts", summary="Order counts by status")
async def order_counts(summary: SummaryAggregator = Depends(get_summary)):
    try:
        return summary.order_counts()
    except CanteenError as e:
        raise http_error(e)


@router.get("/dashboard", summary="Backend dashboard totals")
async def dashboard(gateway: OrderGateway = Depends(get_gateway)):
    try:
        stats = await gateway.fetch_dashboard()
    except CanteenError as e:
        raise http_error(e)
    return stats.model_dump()
