"""Counter (walk-in) orders: validate, print, then persist for push-back."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from canteen_pos.errors import InvalidWalkin, PrintFailure
from canteen_pos.printing import Printer, Receipt, walkin_receipt
from canteen_pos.storage.base import COMPLETED, Storage
from canteen_pos.utils.time_utils import epoch_millis

logger = logging.getLogger(__name__)

CONTACT_NUMBER_RE = re.compile(r"^\d{10}$")


@dataclass
class WalkinResult:
    walkin_id: int
    walkin: Dict[str, Any]
    items: List[Dict[str, Any]]
    receipt: Receipt
    returning_customer: bool = False

    def to_dict(self):
        return {
            "walkin_id": self.walkin_id,
            "walkin": self.walkin,
            "items": self.items,
            "receipt": self.receipt.to_dict(),
            "returning_customer": self.returning_customer,
        }


class WalkinService:
    def __init__(self, storage: Storage, printer: Printer):
        self.storage = storage
        self.printer = printer

    def _build_items(self, contact_number: str, selections: Iterable[Dict[str, Any]], now: int):
        items = []
        for selection in selections:
            item_pk = selection.get("menu_item_id")
            menu_item = self.storage.get_menu_item(item_pk) if item_pk is not None else None
            if menu_item is None:
                raise InvalidWalkin(f"menu item {item_pk} is not available locally")

            min_qty = menu_item.get("min_quantity")
            max_qty = menu_item.get("max_quantity")
            quantity = selection.get("quantity")
            if quantity is None:
                quantity = min_qty or 1
            if quantity < 1 or (min_qty is not None and quantity < min_qty):
                raise InvalidWalkin(
                    f"{menu_item['item_name']}: quantity {quantity} is below the minimum {min_qty or 1}"
                )
            if max_qty is not None and quantity > max_qty:
                raise InvalidWalkin(
                    f"{menu_item['item_name']}: quantity {quantity} exceeds the maximum {max_qty}"
                )

            unit_price = float(menu_item.get("price") or 0.0)
            items.append({
                "menu_item_id": menu_item["item_id"],
                "item_name": menu_item["item_name"],
                "quantity": quantity,
                "unit_price": unit_price,
                "total_price": unit_price * quantity,
                "special_instructions": selection.get("special_instructions") or "",
                "status": "pending",
                "phone_number": contact_number,
                "created_at": now,
            })
        return items

    async def create_walkin(
        self,
        contact_number: str,
        selections: List[Dict[str, Any]],
        menu_id: Optional[int] = 1,
    ) -> WalkinResult:
        """
        Record a counter order.

        The receipt is printed before anything is stored, so a failed print
        leaves no walk-in behind.
        """
        contact_number = (contact_number or "").strip()
        if not CONTACT_NUMBER_RE.match(contact_number):
            raise InvalidWalkin("contact number must be exactly 10 digits")
        if not selections:
            raise InvalidWalkin("select at least one item")

        now = epoch_millis()
        items = self._build_items(contact_number, selections, now)
        total = sum(item["total_price"] for item in items)
        walkin = {
            "customer_name": "",
            "contact_number": contact_number,
            "number_of_people": 1,
            "table_number": "",
            "order_status": COMPLETED,
            "menu_id": menu_id,
            "total_amount": total,
            "discount_amount": 0.0,
            "tax_amount": 0.0,
            "final_amount": total,
            "payment_method": "Cash",
            "payment_status": "unpaid",
            "notes": "",
            "created_at": now,
            "updated_at": now,
            "is_synced": 0,
        }

        returning = self.storage.has_completed_walkin(contact_number)
        receipt = walkin_receipt(contact_number, items)
        try:
            await self.printer.print_receipt(receipt)
        except PrintFailure:
            logger.error(f"Printing failed for walk-in {contact_number}; nothing stored")
            raise
        except Exception as e:
            logger.error(f"Printer error for walk-in {contact_number}: {e}")
            raise PrintFailure(f"failed to print walk-in receipt: {e}") from e

        walkin_id = self.storage.add_walkin(walkin, items)
        logger.info(f"Walk-in {walkin_id} stored: {len(items)} items, total {total}")
        return WalkinResult(
            walkin_id=walkin_id,
            walkin=self.storage.get_walkin(walkin_id),
            items=self.storage.get_walkin_items(walkin_id),
            receipt=receipt,
            returning_customer=returning,
        )

    def list_walkins(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.storage.list_walkins(status=status)
