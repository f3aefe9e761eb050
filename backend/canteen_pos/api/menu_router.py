"""Locally cached menus and items."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from canteen_pos.api.dependencies import get_storage, http_error
from canteen_pos.errors import CanteenError
from canteen_pos.storage import Storage


router = APIRouter(prefix="/api/menu", tags=["menu"])


@router.get("/items", summary="List menu items")
async def list_menu_items(
    menu_id: Optional[int] = Query(None, description="Menu id; omit for every cached item"),
    storage: Storage = Depends(get_storage),
):
    try:
        return storage.list_menu_items(menu_id=menu_id)
    except CanteenError as e:
        raise http_error(e)


@router.get("/{menu_id}", summary="Get a cached menu")
async def get_menu(menu_id: int, storage: Storage = Depends(get_storage)):
    try:
        menu = storage.get_menu(menu_id)
        items = storage.list_menu_items(menu_id=menu_id) if menu else []
    except CanteenError as e:
        raise http_error(e)
    if menu is None:
        raise HTTPException(status_code=404, detail=f"Menu {menu_id} is not cached; sync it first")
    return {"menu": menu, "items": items}
