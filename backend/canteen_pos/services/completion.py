"""
Order Completion Workflow.

Turns a scanned or typed order identifier into a handed-over order: check
the cached status, print the receipt, then mark the order completed. The
status only changes after the printer reports success.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from canteen_pos.errors import (
    AlreadyCompleted,
    OrderCancelled,
    OrderNotFound,
    OrderNotPlaced,
    PrintFailure,
)
from canteen_pos.printing import RECEIPT_PREFIX, Printer, Receipt, order_receipt
from canteen_pos.storage.base import CANCELLED, COMPLETED, PLACED, Storage

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    order: Dict[str, Any]
    items: List[Dict[str, Any]]
    receipt: Receipt

    def to_dict(self):
        return {
            "order": self.order,
            "items": self.items,
            "receipt": self.receipt.to_dict(),
        }


def parse_identifier(identifier: Any) -> int:
    """
    Order primary key from free text.

    Accepts "101", " 101 " and the printed form "NV101".
    """
    text = str(identifier if identifier is not None else "").strip()
    if text.upper().startswith(RECEIPT_PREFIX):
        text = text[len(RECEIPT_PREFIX):].strip()
    if not text.isdecimal():
        raise OrderNotFound(f"no order matches {identifier!r}")
    return int(text)


class OrderCompletionWorkflow:
    def __init__(self, storage: Storage, printer: Printer):
        self.storage = storage
        self.printer = printer

    def lookup_order(self, identifier: Any) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        """Return (order, items) for an identifier without side effects."""
        order_pk = parse_identifier(identifier)
        order = self.storage.get_order(order_pk)
        if order is None:
            raise OrderNotFound(f"order {order_pk} is not in the local store")
        return order, self.storage.get_order_items(order_pk)

    async def complete_order(self, identifier: Any) -> CompletionResult:
        order, items = self.lookup_order(identifier)
        order_pk = order["id"]

        if order["status"] == COMPLETED:
            raise AlreadyCompleted(f"order {order_pk} has already been completed")
        if order["status"] == CANCELLED:
            raise OrderCancelled(f"order {order_pk} has been cancelled")
        if order["status"] != PLACED:
            raise OrderNotPlaced(f"order {order_pk} is {order['status']!r}, not placed")

        receipt = order_receipt(order, items)
        try:
            await self.printer.print_receipt(receipt)
        except PrintFailure:
            logger.error(f"Printing failed for order {order_pk}; status left as {order['status']}")
            raise
        except Exception as e:
            logger.error(f"Printer error for order {order_pk}: {e}")
            raise PrintFailure(f"failed to print order {order_pk}: {e}") from e

        if not self.storage.update_order_status(order_pk, COMPLETED):
            # Someone else moved it out of "placed" while the receipt printed
            current = self.storage.get_order(order_pk)
            if current is None:
                raise OrderNotFound(f"order {order_pk} disappeared during completion")
            if current["status"] == CANCELLED:
                raise OrderCancelled(f"order {order_pk} has been cancelled")
            if current["status"] != COMPLETED:
                raise OrderNotPlaced(f"order {order_pk} moved to {current['status']!r} during completion")
            raise AlreadyCompleted(f"order {order_pk} has already been completed")

        order["status"] = COMPLETED
        logger.info(f"Order {order_pk} completed, receipt total {receipt.total}")
        return CompletionResult(order=order, items=items, receipt=receipt)
