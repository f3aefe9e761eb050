"""
In-memory storage implementation for the local order cache.

Keeps every table in plain dictionaries keyed by primary key. Behaves like
SQLiteStorage for the Storage contract and is what most unit tests run on.
"""

from copy import deepcopy
from typing import Any, Dict, Iterable, List, Optional, Set

from canteen_pos.errors import StorageFailure
from canteen_pos.storage.base import COMPLETED, PLACED, Storage
from canteen_pos.utils.time_utils import parse_timestamp, to_iso

_ORDER_FIELDS = (
    "order_id", "user_id", "total_amount", "status", "canteen_id",
    "menu_configuration_id", "created_by_id", "updated_by_id", "qr_code",
)
_ORDER_ITEM_FIELDS = (
    "item_id", "quantity", "price", "total", "item_name",
    "created_by_id", "updated_by_id",
)
_WALKIN_DEFAULTS = {
    "customer_name": "",
    "contact_number": "",
    "number_of_people": 1,
    "table_number": "",
    "order_status": COMPLETED,
    "menu_id": None,
    "total_amount": 0.0,
    "discount_amount": 0.0,
    "tax_amount": 0.0,
    "final_amount": 0.0,
    "payment_method": "Cash",
    "payment_status": "unpaid",
    "notes": "",
    "created_by_id": None,
    "updated_by_id": None,
    "created_at": None,
    "updated_at": None,
    "is_synced": 0,
}
_WALKIN_ITEM_DEFAULTS = {
    "menu_item_id": None,
    "item_name": "",
    "quantity": 1,
    "unit_price": 0.0,
    "total_price": 0.0,
    "special_instructions": "",
    "status": "pending",
    "phone_number": "",
    "created_at": None,
}


def _normalize_timestamps(row: Dict[str, Any], source: Dict[str, Any]) -> None:
    row["created_at"] = to_iso(parse_timestamp(source.get("created_at")))
    row["updated_at"] = to_iso(parse_timestamp(source.get("updated_at")))


class InMemoryStorage(Storage):
    """In-memory storage using dictionaries."""

    def __init__(self):
        """Initialize with empty storage."""
        self._orders: Dict[int, Dict[str, Any]] = {}
        self._order_items: Dict[int, Dict[str, Any]] = {}
        self._menus: Dict[int, Dict[str, Any]] = {}
        self._menu_items: Dict[int, Dict[str, Any]] = {}
        self._walkins: Dict[int, Dict[str, Any]] = {}
        self._walkin_items: Dict[int, Dict[str, Any]] = {}
        self._next_menu_pk = 1
        self._next_menu_item_pk = 1
        self._next_walkin_pk = 1
        self._next_walkin_item_pk = 1

    # ---------- Orders ----------

    def list_order_ids(self) -> Set[int]:
        return set(self._orders.keys())

    def save_order(
        self,
        order: Dict[str, Any],
        items: List[Dict[str, Any]],
        replace: bool = False,
    ) -> None:
        order_pk = order["id"]
        if not replace and order_pk in self._orders:
            raise StorageFailure(f"save_order failed: order {order_pk} already exists")

        row = {"id": order_pk}
        for field in _ORDER_FIELDS:
            row[field] = order.get(field)
        row["order_id"] = row["order_id"] or order_pk
        row["status"] = row["status"] or PLACED
        _normalize_timestamps(row, order)

        new_items = []
        for item in items:
            item_row = {"id": item["id"], "order_id": order_pk}
            for field in _ORDER_ITEM_FIELDS:
                item_row[field] = item.get(field)
            item_row["quantity"] = item_row["quantity"] or 0
            item_row["price"] = item_row["price"] or 0.0
            item_row["item_name"] = item_row["item_name"] or ""
            _normalize_timestamps(item_row, item)
            new_items.append(item_row)

        # Parent first, then children
        self._orders[order_pk] = row
        if replace:
            for item_pk in [pk for pk, it in self._order_items.items() if it["order_id"] == order_pk]:
                del self._order_items[item_pk]
        for item_row in new_items:
            self._order_items[item_row["id"]] = item_row

    def get_order(self, order_id: int) -> Optional[Dict[str, Any]]:
        row = self._orders.get(order_id)
        return dict(row) if row else None

    def get_order_items(self, order_id: int) -> List[Dict[str, Any]]:
        return [
            dict(it)
            for _, it in sorted(self._order_items.items())
            if it["order_id"] == order_id
        ]

    def list_orders(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            dict(o)
            for _, o in sorted(self._orders.items())
            if status is None or o["status"] == status
        ]

    def update_order_status(self, order_id: int, status: str) -> bool:
        row = self._orders.get(order_id)
        if row is None or row["status"] != PLACED:
            return False
        row["status"] = status
        return True

    def delete_orders(self, order_ids: Iterable[int]) -> int:
        ids = set(order_ids)
        for item_pk in [pk for pk, it in self._order_items.items() if it["order_id"] in ids]:
            del self._order_items[item_pk]
        removed = 0
        for order_pk in ids:
            if self._orders.pop(order_pk, None) is not None:
                removed += 1
        return removed

    def list_order_lines(self) -> List[Dict[str, Any]]:
        lines = []
        for order_pk, order in sorted(self._orders.items()):
            for _, item in sorted(self._order_items.items()):
                if item["order_id"] != order_pk:
                    continue
                lines.append({
                    "order_id": order_pk,
                    "status": order["status"],
                    "menu_configuration_id": order["menu_configuration_id"],
                    "item_id": item["item_id"],
                    "item_name": item["item_name"],
                    "quantity": item["quantity"],
                })
        return lines

    def count_orders_by_status(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for order in self._orders.values():
            counts[order["status"]] = counts.get(order["status"], 0) + 1
        return counts

    # ---------- Menus ----------

    def save_menu(self, menu: Dict[str, Any], items: List[Dict[str, Any]]) -> None:
        menu_id = menu["menu_id"]
        existing = next((m for m in self._menus.values() if m["menu_id"] == menu_id), None)
        if existing is None:
            existing = {"id": self._next_menu_pk, "menu_id": menu_id}
            self._menus[self._next_menu_pk] = existing
            self._next_menu_pk += 1
        for field in ("name", "description", "start_time", "end_time", "menu_configuration_id"):
            existing[field] = menu.get(field)
        _normalize_timestamps(existing, menu)

        for item in items:
            row = next(
                (
                    mi for mi in self._menu_items.values()
                    if mi["menu_id"] == menu_id and mi["item_id"] == item["item_id"]
                ),
                None,
            )
            if row is None:
                row = {"id": self._next_menu_item_pk, "menu_id": menu_id, "item_id": item["item_id"]}
                self._menu_items[self._next_menu_item_pk] = row
                self._next_menu_item_pk += 1
            self._fill_menu_item(row, item)

    def replace_catalog(self, items: List[Dict[str, Any]]) -> int:
        for pk in [pk for pk, mi in self._menu_items.items() if mi["menu_id"] is None]:
            del self._menu_items[pk]
        for item in items:
            row = {"id": self._next_menu_item_pk, "menu_id": None, "item_id": item["item_id"]}
            self._fill_menu_item(row, item)
            self._menu_items[self._next_menu_item_pk] = row
            self._next_menu_item_pk += 1
        return len(items)

    @staticmethod
    def _fill_menu_item(row: Dict[str, Any], item: Dict[str, Any]) -> None:
        row["item_name"] = item.get("item_name") or ""
        row["min_quantity"] = item.get("min_quantity")
        row["max_quantity"] = item.get("max_quantity")
        row["price"] = item.get("price") or 0.0

    def get_menu(self, menu_id: int) -> Optional[Dict[str, Any]]:
        row = next((m for m in self._menus.values() if m["menu_id"] == menu_id), None)
        return dict(row) if row else None

    def list_menu_items(self, menu_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return [
            dict(mi)
            for _, mi in sorted(self._menu_items.items())
            if menu_id is None or mi["menu_id"] == menu_id
        ]

    def get_menu_item(self, item_pk: int) -> Optional[Dict[str, Any]]:
        row = self._menu_items.get(item_pk)
        return dict(row) if row else None

    # ---------- Walk-ins ----------

    def add_walkin(self, walkin: Dict[str, Any], items: List[Dict[str, Any]]) -> int:
        walkin_id = self._next_walkin_pk
        self._next_walkin_pk += 1

        row = deepcopy(_WALKIN_DEFAULTS)
        row.update({k: v for k, v in walkin.items() if k in _WALKIN_DEFAULTS})
        row["id"] = walkin_id
        self._walkins[walkin_id] = row

        for item in items:
            item_row = deepcopy(_WALKIN_ITEM_DEFAULTS)
            item_row.update({k: v for k, v in item.items() if k in _WALKIN_ITEM_DEFAULTS})
            item_row["id"] = self._next_walkin_item_pk
            item_row["walkin_id"] = walkin_id
            self._walkin_items[self._next_walkin_item_pk] = item_row
            self._next_walkin_item_pk += 1
        return walkin_id

    def get_walkin(self, walkin_id: int) -> Optional[Dict[str, Any]]:
        row = self._walkins.get(walkin_id)
        return dict(row) if row else None

    def get_walkin_items(self, walkin_id: int) -> List[Dict[str, Any]]:
        return [
            dict(it)
            for _, it in sorted(self._walkin_items.items())
            if it["walkin_id"] == walkin_id
        ]

    def list_walkins(
        self, status: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        rows = [
            dict(w)
            for _, w in sorted(self._walkins.items())
            if status is None or w["order_status"] == status
        ]
        return rows[:limit] if limit is not None else rows

    def delete_walkins(self, walkin_ids: Iterable[int]) -> int:
        ids = set(walkin_ids)
        for pk in [pk for pk, it in self._walkin_items.items() if it["walkin_id"] in ids]:
            del self._walkin_items[pk]
        removed = 0
        for walkin_id in ids:
            if self._walkins.pop(walkin_id, None) is not None:
                removed += 1
        return removed

    def has_completed_walkin(self, contact_number: str) -> bool:
        return any(
            w["contact_number"] == contact_number and w["order_status"] == COMPLETED
            for w in self._walkins.values()
        )

    # ---------- Lifecycle ----------

    def clear(self) -> None:
        """Clear all state."""
        self._orders.clear()
        self._order_items.clear()
        self._menus.clear()
        self._menu_items.clear()
        self._walkins.clear()
        self._walkin_items.clear()
