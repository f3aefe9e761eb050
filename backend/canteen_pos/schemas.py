"""
Pydantic models for backend wire payloads.

The backend speaks camelCase JSON; these models accept it through aliases
and hand snake_case rows to the local store.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from canteen_pos.storage.base import PLACED


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RemoteOrderItem(WireModel):
    id: int
    order_id: int
    item_id: int
    quantity: int = 1
    price: float = 0.0
    total: Optional[float] = None
    created_by_id: Optional[int] = None
    updated_by_id: Optional[int] = None
    created_at: Any = None
    updated_at: Any = None
    menu_item_item: Optional[Dict[str, Any]] = None

    @property
    def item_name(self) -> str:
        return (self.menu_item_item or {}).get("name") or ""

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
            "item_name": self.item_name,
            "created_by_id": self.created_by_id,
            "updated_by_id": self.updated_by_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class RemoteOrder(WireModel):
    id: int
    user_id: Optional[int] = None
    total_amount: Optional[float] = None
    status: Literal["placed", "completed", "cancelled"] = PLACED
    canteen_id: Optional[int] = None
    menu_configuration_id: Optional[int] = None
    created_by_id: Optional[int] = None
    updated_by_id: Optional[int] = None
    qr_code: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None
    order_items: List[RemoteOrderItem] = Field(default_factory=list)

    @property
    def order_id(self) -> int:
        """Business order number: taken from the first item, else the row id."""
        if self.order_items:
            return self.order_items[0].order_id
        return self.id

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "total_amount": self.total_amount,
            "status": self.status,
            "canteen_id": self.canteen_id,
            "menu_configuration_id": self.menu_configuration_id,
            "created_by_id": self.created_by_id,
            "updated_by_id": self.updated_by_id,
            "qr_code": self.qr_code,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def item_rows(self) -> List[Dict[str, Any]]:
        return [item.to_row() for item in self.order_items]


class PushAck(WireModel):
    """Backend answer to a status push."""

    updated_count: int = 0
    updated_ids: Optional[List[int]] = None


class RemoteMenuItem(WireModel):
    menu_id: Optional[int] = None
    item_id: int
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    item: Optional[Dict[str, Any]] = None

    def to_row(self) -> Dict[str, Any]:
        item = self.item or {}
        pricing = item.get("pricing") or {}
        return {
            "item_id": self.item_id,
            "item_name": item.get("name") or "",
            "min_quantity": self.min_quantity,
            "max_quantity": self.max_quantity,
            "price": pricing.get("price") or 0.0,
        }


class RemoteMenu(WireModel):
    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    menu_configuration_id: Optional[int] = None
    created_at: Any = None
    updated_at: Any = None
    menu_items: List[RemoteMenuItem] = Field(default_factory=list)

    def to_row(self) -> Dict[str, Any]:
        return {
            "menu_id": self.id,
            "name": self.name,
            "description": self.description,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "menu_configuration_id": self.menu_configuration_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class RemoteCatalogItem(WireModel):
    id: int
    name: str = ""
    quantity: Optional[int] = None
    pricing: Optional[Dict[str, Any]] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "item_id": self.id,
            "item_name": self.name,
            "min_quantity": 1,
            "max_quantity": self.quantity,
            "price": (self.pricing or {}).get("price") or 0.0,
        }


class DashboardStats(WireModel):
    total_orders: int = 0
    total_amount: float = 0.0
    completed_orders: int = 0
    cancelled_orders: int = 0
    total_items: int = 0
    total_canteens: int = 0
    total_menus: int = 0


def to_wire(row: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a snake_case store row into the backend's camelCase keys."""
    return {to_camel(key): value for key, value in row.items()}
