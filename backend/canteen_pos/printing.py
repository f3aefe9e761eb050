"""
Receipt rendering and the print collaborator.

The physical printer lives outside this service; it is reached through the
Printer interface, which either returns normally or raises PrintFailure.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from canteen_pos.errors import PrintFailure

logger = logging.getLogger(__name__)

RECEIPT_PREFIX = "NV"
CURRENCY = "₹"


def _money(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


@dataclass
class ReceiptLine:
    item_name: str
    quantity: int
    price: float

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@dataclass
class Receipt:
    """A rendered-on-demand receipt for an order or a walk-in."""

    title: str
    reference: str
    lines: List[ReceiptLine] = field(default_factory=list)
    footer: Optional[str] = None

    @property
    def total(self) -> float:
        return sum(line.line_total for line in self.lines)

    def render(self) -> str:
        out = [self.title, f"Order ID: {self.reference}", "", "Order Items"]
        for line in self.lines:
            out.append(f"Item: {line.item_name}")
            out.append(f"Quantity: {line.quantity}")
            out.append(f"Price: {CURRENCY}{_money(line.price)}")
            out.append(f"Total Price: {CURRENCY}{_money(line.line_total)}")
        out.append("")
        out.append(f"Total: {CURRENCY}{_money(self.total)}")
        if self.footer:
            out.append(self.footer)
        return "\n".join(out)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "reference": self.reference,
            "lines": [
                {
                    "item_name": line.item_name,
                    "quantity": line.quantity,
                    "price": line.price,
                    "line_total": line.line_total,
                }
                for line in self.lines
            ],
            "total": self.total,
        }


def order_receipt(order: Dict[str, Any], items: Iterable[Dict[str, Any]]) -> Receipt:
    """Build the receipt handed over when a pre-paid order is collected."""
    return Receipt(
        title="Order Receipt",
        reference=f"{RECEIPT_PREFIX}{order['order_id']}",
        lines=[
            ReceiptLine(
                item_name=item.get("item_name") or "",
                quantity=int(item.get("quantity") or 0),
                price=float(item.get("price") or 0.0),
            )
            for item in items
        ],
    )


def walkin_receipt(contact_number: str, items: Iterable[Dict[str, Any]]) -> Receipt:
    return Receipt(
        title="Walk-in Receipt",
        reference=f"W-{contact_number}",
        lines=[
            ReceiptLine(
                item_name=item.get("item_name") or "",
                quantity=int(item.get("quantity") or 0),
                price=float(item.get("unit_price") or 0.0),
            )
            for item in items
        ],
        footer="Payment: Cash",
    )


class Printer(ABC):
    """Print collaborator. Must raise PrintFailure when nothing was printed."""

    @abstractmethod
    async def print_receipt(self, receipt: Receipt) -> None:
        ...


class LogPrinter(Printer):
    """Writes receipts to the log; the default when no device is attached."""

    async def print_receipt(self, receipt: Receipt) -> None:
        try:
            document = receipt.render()
        except (TypeError, ValueError) as e:
            raise PrintFailure(f"could not render receipt {receipt.reference}: {e}") from e
        logger.info(f"Printing receipt {receipt.reference}\n{document}")
