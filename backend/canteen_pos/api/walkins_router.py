"""Walk-in (counter) orders API."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from canteen_pos.api.dependencies import get_walkins, http_error
from canteen_pos.errors import CanteenError
from canteen_pos.services.walkins import WalkinService


router = APIRouter(prefix="/api/walkins", tags=["walkins"])


class WalkinSelection(BaseModel):
    menu_item_id: int
    quantity: Optional[int] = None
    special_instructions: Optional[str] = None


class CreateWalkinRequest(BaseModel):
    """Request body for a counter order."""
    contact_number: str
    items: List[WalkinSelection] = Field(default_factory=list)
    menu_id: Optional[int] = 1


@router.post("", status_code=201, summary="Record a walk-in order")
async def create_walkin(body: CreateWalkinRequest, walkins: WalkinService = Depends(get_walkins)):
    """
    Print the receipt and store the walk-in for the next push.

    - **422** invalid contact number, empty selection or quantity out of range
    - **502** printer failure (nothing is stored)
    """
    try:
        result = await walkins.create_walkin(
            body.contact_number,
            [selection.model_dump() for selection in body.items],
            menu_id=body.menu_id,
        )
    except CanteenError as e:
        raise http_error(e)
    return result.to_dict()


@router.get("", summary="List walk-ins awaiting push")
async def list_walkins(
    status: Optional[str] = Query(None),
    walkins: WalkinService = Depends(get_walkins),
):
    try:
        return walkins.list_walkins(status=status)
    except CanteenError as e:
        raise http_error(e)
