"""
Abstract Storage interface for the local order cache.

Defines the contract for orders, menus and walk-in storage.
Implementations can be in-memory or SQLite-backed.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set

PLACED = "placed"
COMPLETED = "completed"
CANCELLED = "cancelled"

ORDER_STATUSES = (PLACED, COMPLETED, CANCELLED)
TERMINAL_STATUSES = (COMPLETED, CANCELLED)


class Storage(ABC):
    """Abstract base class for storage implementations."""

    # ---------- Orders ----------

    @abstractmethod
    def list_order_ids(self) -> Set[int]:
        """Return the primary keys of every cached order."""
        ...

    @abstractmethod
    def save_order(
        self,
        order: Dict[str, Any],
        items: List[Dict[str, Any]],
        replace: bool = False,
    ) -> None:
        """
        Store an order and its items in one unit.

        The order row is written before its item rows. With replace=False
        an existing id is an error; with replace=True the order is
        overwritten in place and its items are replaced.
        """
        ...

    @abstractmethod
    def get_order(self, order_id: int) -> Optional[Dict[str, Any]]:
        """Get a single order by primary key. Returns None if not found."""
        ...

    @abstractmethod
    def get_order_items(self, order_id: int) -> List[Dict[str, Any]]:
        """Get the items of an order in id order. Empty list if none."""
        ...

    @abstractmethod
    def list_orders(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """List orders, optionally restricted to one status, in id order."""
        ...

    @abstractmethod
    def update_order_status(self, order_id: int, status: str) -> bool:
        """
        Move an order out of "placed".

        Only applies when the current status is "placed"; completed and
        cancelled orders are never changed. Returns True if a row changed.
        """
        ...

    @abstractmethod
    def delete_orders(self, order_ids: Iterable[int]) -> int:
        """Delete orders and their items. Returns count of removed orders."""
        ...

    @abstractmethod
    def list_order_lines(self) -> List[Dict[str, Any]]:
        """
        Join of orders and order items.

        Each row carries order_id, status, menu_configuration_id, item_id,
        item_name and quantity, in (order id, item id) order.
        """
        ...

    @abstractmethod
    def count_orders_by_status(self) -> Dict[str, int]:
        """Return {status: count} for every status present."""
        ...

    # ---------- Menus ----------

    @abstractmethod
    def save_menu(self, menu: Dict[str, Any], items: List[Dict[str, Any]]) -> None:
        """Upsert a menu header and its items (keyed by menu_id, item_id)."""
        ...

    @abstractmethod
    def replace_catalog(self, items: List[Dict[str, Any]]) -> int:
        """Replace all catalog-wide items (menu_id None). Returns count stored."""
        ...

    @abstractmethod
    def get_menu(self, menu_id: int) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def list_menu_items(self, menu_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """List menu items, all of them when menu_id is None."""
        ...

    @abstractmethod
    def get_menu_item(self, item_pk: int) -> Optional[Dict[str, Any]]:
        """Get a menu item by its local primary key."""
        ...

    # ---------- Walk-ins ----------

    @abstractmethod
    def add_walkin(self, walkin: Dict[str, Any], items: List[Dict[str, Any]]) -> int:
        """
        Insert a walk-in and its items in one unit.

        The new walk-in id is written into every item's walkin_id.
        Returns the new walk-in id.
        """
        ...

    @abstractmethod
    def get_walkin(self, walkin_id: int) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def get_walkin_items(self, walkin_id: int) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def list_walkins(
        self, status: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """List walk-ins in id order, optionally filtered and limited."""
        ...

    @abstractmethod
    def delete_walkins(self, walkin_ids: Iterable[int]) -> int:
        """Delete walk-ins and their items. Returns count of removed walk-ins."""
        ...

    @abstractmethod
    def has_completed_walkin(self, contact_number: str) -> bool:
        """True if a completed walk-in already exists for this contact number."""
        ...

    # ---------- Lifecycle ----------

    @abstractmethod
    def clear(self) -> None:
        """Clear all state (every table)."""
        ...

    def close(self) -> None:
        """Release resources. Optional."""
        return None
