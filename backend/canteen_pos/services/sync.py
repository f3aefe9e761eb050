"""
Sync Reconciler: keeps the local cache and the backend consistent.

Pull inserts today's orders the store has not seen. Push-back reports
locally completed orders and walk-ins and deletes them once the backend
acknowledges. Every operation runs under one asyncio.Lock so overlapping
triggers cannot interleave their snapshot, diff and write steps.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Collection, Dict, List, Optional

from canteen_pos.errors import SyncInProgress
from canteen_pos.gateway import OrderGateway
from canteen_pos.schemas import to_wire
from canteen_pos.services.summary import SummaryAggregator
from canteen_pos.session import CanteenSession
from canteen_pos.storage.base import COMPLETED, TERMINAL_STATUSES, Storage

logger = logging.getLogger(__name__)


@dataclass
class PullResult:
    fetched: int = 0
    inserted: List[int] = field(default_factory=list)
    refreshed: List[int] = field(default_factory=list)
    skipped_existing: List[int] = field(default_factory=list)
    skipped_empty: List[int] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class PushResult:
    pushed: List[int] = field(default_factory=list)
    updated_count: int = 0
    deleted: int = 0

    @property
    def acknowledged(self) -> bool:
        return self.updated_count > 0

    def to_dict(self):
        data = asdict(self)
        data["acknowledged"] = self.acknowledged
        return data


@dataclass
class SyncCycleResult:
    orders: PushResult
    walkins: PushResult
    pull: PullResult

    def to_dict(self):
        return {
            "orders": self.orders.to_dict(),
            "walkins": self.walkins.to_dict(),
            "pull": self.pull.to_dict(),
        }


class SyncReconciler:
    def __init__(
        self,
        storage: Storage,
        gateway: OrderGateway,
        session: CanteenSession,
        summary: Optional[SummaryAggregator] = None,
        walkin_batch_size: int = 10,
    ):
        self.storage = storage
        self.gateway = gateway
        self.session = session
        self.summary = summary or SummaryAggregator(storage)
        self.walkin_batch_size = walkin_batch_size
        self._lock = asyncio.Lock()

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    # ---------- Full cycle ----------

    async def run_sync(self, canteen_id: Optional[int] = None) -> SyncCycleResult:
        """
        Push completed orders and walk-ins, then pull today's orders.

        Fails fast with SyncInProgress when another operation holds the
        guard. Any failure ends the cycle and propagates.
        """
        if self._lock.locked():
            raise SyncInProgress("a sync cycle is already running")
        async with self._lock:
            logger.info("Sync cycle started")
            orders = await self._push_completed_orders()
            walkins = await self._push_completed_walkins()
            pull = await self._pull_todays_orders(canteen_id, ())
            logger.info(
                f"Sync cycle finished: pushed {len(orders.pushed)} orders, "
                f"{len(walkins.pushed)} walk-ins; inserted {len(pull.inserted)} orders"
            )
            return SyncCycleResult(orders=orders, walkins=walkins, pull=pull)

    # ---------- Pull ----------

    async def pull_todays_orders(
        self,
        canteen_id: Optional[int] = None,
        refresh_ids: Collection[int] = (),
    ) -> PullResult:
        async with self._lock:
            return await self._pull_todays_orders(canteen_id, refresh_ids)

    async def _pull_todays_orders(
        self, canteen_id: Optional[int], refresh_ids: Collection[int]
    ) -> PullResult:
        if canteen_id is None:
            canteen_id = self.session.require_canteen_id()

        # Raises MalformedResponse before anything is written
        remote_orders = await self.gateway.fetch_todays_orders(canteen_id)
        result = PullResult(fetched=len(remote_orders))

        refresh = set(refresh_ids)
        known = self.storage.list_order_ids()

        for remote in remote_orders:
            if not remote.order_items:
                logger.debug(f"Skipping order {remote.id}: no items")
                result.skipped_empty.append(remote.id)
                continue

            if remote.id in known:
                if remote.id not in refresh:
                    result.skipped_existing.append(remote.id)
                    continue
                row = remote.to_row()
                local = self.storage.get_order(remote.id)
                if local is not None and local["status"] in TERMINAL_STATUSES:
                    row["status"] = local["status"]
                self.storage.save_order(row, remote.item_rows(), replace=True)
                result.refreshed.append(remote.id)
                continue

            self.storage.save_order(remote.to_row(), remote.item_rows())
            known.add(remote.id)
            result.inserted.append(remote.id)

        logger.info(
            f"Pulled {result.fetched} orders for canteen {canteen_id}: "
            f"{len(result.inserted)} inserted, {len(result.refreshed)} refreshed, "
            f"{len(result.skipped_existing)} already cached, {len(result.skipped_empty)} without items"
        )
        self.summary.refresh()
        return result

    # ---------- Push-back ----------

    async def push_completed_orders(self) -> PushResult:
        async with self._lock:
            return await self._push_completed_orders()

    async def _push_completed_orders(self) -> PushResult:
        completed = self.storage.list_orders(status=COMPLETED)
        if not completed:
            return PushResult()

        pks_by_order_id: Dict[int, List[int]] = {}
        for order in completed:
            pks_by_order_id.setdefault(order["order_id"], []).append(order["id"])
        order_ids = list(pks_by_order_id)

        ack = await self.gateway.update_order_status(order_ids)
        result = PushResult(pushed=order_ids, updated_count=ack.updated_count)
        if not result.acknowledged:
            logger.warning(f"Backend updated 0 of {len(order_ids)} completed orders; keeping local rows")
            return result

        confirmed = order_ids
        if ack.updated_ids is not None:
            acked = set(ack.updated_ids)
            confirmed = [oid for oid in order_ids if oid in acked]
        elif ack.updated_count < len(order_ids):
            logger.warning(
                f"Backend updated {ack.updated_count} of {len(order_ids)} orders without naming them"
            )

        # Only rows from this scan; orders completed since then wait for the next cycle
        doomed = [pk for oid in confirmed for pk in pks_by_order_id[oid]]
        result.deleted = self.storage.delete_orders(doomed)
        logger.info(f"Pushed {len(order_ids)} completed orders, deleted {result.deleted} locally")
        return result

    async def push_completed_walkins(self) -> PushResult:
        async with self._lock:
            return await self._push_completed_walkins()

    async def _push_completed_walkins(self) -> PushResult:
        walkins = self.storage.list_walkins(status=COMPLETED, limit=self.walkin_batch_size)

        batch = []
        for walkin in walkins:
            items = self.storage.get_walkin_items(walkin["id"])
            if not items:
                logger.debug(f"Skipping walk-in {walkin['id']}: no items")
                continue
            payload = to_wire(walkin)
            payload["orderItems"] = [to_wire(item) for item in items]
            batch.append(payload)

        if not batch:
            return PushResult()

        walkin_ids = [payload["id"] for payload in batch]
        ack = await self.gateway.update_walkin_status(batch)
        result = PushResult(pushed=walkin_ids, updated_count=ack.updated_count)
        if not result.acknowledged:
            logger.warning(f"Backend updated 0 of {len(walkin_ids)} walk-ins; keeping local rows")
            return result

        confirmed = walkin_ids
        if ack.updated_ids is not None:
            acked = set(ack.updated_ids)
            confirmed = [wid for wid in walkin_ids if wid in acked]
        elif ack.updated_count < len(walkin_ids):
            logger.warning(
                f"Backend updated {ack.updated_count} of {len(walkin_ids)} walk-ins without naming them"
            )
        result.deleted = self.storage.delete_walkins(confirmed)
        logger.info(f"Pushed {len(walkin_ids)} walk-ins, deleted {result.deleted} locally")
        return result

    # ---------- Menu ----------

    async def sync_menu(self, menu_id: int) -> Dict[str, int]:
        """Store a menu and its items from the backend (upsert)."""
        async with self._lock:
            menu = await self.gateway.fetch_menu(menu_id)
            items = [item.to_row() for item in menu.menu_items]
            self.storage.save_menu(menu.to_row(), items)
            logger.info(f"Synced menu {menu.id} with {len(items)} items")
            return {"menu_id": menu.id, "items": len(items)}

    async def refresh_catalog(self) -> int:
        """Replace the catalog-wide item list. An empty answer keeps the old one."""
        async with self._lock:
            remote_items = await self.gateway.fetch_item_catalog()
            if not remote_items:
                logger.warning("Backend returned an empty item catalog; keeping local items")
                return 0
            stored = self.storage.replace_catalog([item.to_row() for item in remote_items])
            logger.info(f"Item catalog replaced with {stored} items")
            return stored
