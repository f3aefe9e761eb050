"""Local Summary Aggregator: read-only projections over the order cache."""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Tuple

from canteen_pos.storage.base import COMPLETED, ORDER_STATUSES, Storage

logger = logging.getLogger(__name__)


@dataclass
class ItemSummary:
    menu_configuration_id: Optional[int]
    item_id: int
    item_name: str
    total_qty: int = 0
    completed_qty: int = 0

    def to_dict(self):
        return asdict(self)


def compute_item_summary(storage: Storage) -> List[ItemSummary]:
    """
    Per (menu configuration, item) quantities across all cached orders.

    total_qty sums every status; completed_qty only completed orders.
    Groups come out in order of first occurrence.
    """
    groups: Dict[Tuple[Optional[int], int], ItemSummary] = {}
    for line in storage.list_order_lines():
        key = (line["menu_configuration_id"], line["item_id"])
        summary = groups.get(key)
        if summary is None:
            summary = ItemSummary(
                menu_configuration_id=line["menu_configuration_id"],
                item_id=line["item_id"],
                item_name=line["item_name"] or "",
            )
            groups[key] = summary
        quantity = line["quantity"] or 0
        summary.total_qty += quantity
        if line["status"] == COMPLETED:
            summary.completed_qty += quantity
    return list(groups.values())


class SummaryAggregator:
    """Keeps the latest item summary for the dashboard."""

    def __init__(self, storage: Storage):
        self.storage = storage
        self.latest: List[ItemSummary] = []

    def compute_item_summary(self) -> List[ItemSummary]:
        return compute_item_summary(self.storage)

    def refresh(self) -> List[ItemSummary]:
        self.latest = self.compute_item_summary()
        logger.debug(f"Item summary refreshed: {len(self.latest)} groups")
        return self.latest

    def order_counts(self) -> Dict[str, int]:
        """Order count per status (every known status present) plus total."""
        counts = self.storage.count_orders_by_status()
        result = {status: counts.get(status, 0) for status in ORDER_STATUSES}
        for status, count in counts.items():
            result.setdefault(status, count)
        result["total"] = sum(counts.values())
        return result
