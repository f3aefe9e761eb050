"""
Tests for pushing completed orders and walk-ins back to the backend.

Local rows are deleted only after a non-zero acknowledgement, and only the
rows that were part of the push.
"""

import logging

import httpx
import pytest

from canteen_pos.errors import MalformedResponse, NetworkFailure
from canteen_pos.storage import COMPLETED, PLACED


async def _seed(reconciler, storage, backend, make_order, completed=(), placed=()):
    backend.orders = [
        make_order(pk, [(1, 1, 10.0, "Tea")], order_id=pk + 5000) for pk in (*completed, *placed)
    ]
    await reconciler.pull_todays_orders()
    for pk in completed:
        storage.update_order_status(pk, COMPLETED)


def _walkin(storage, contact="9876543210", items=1, status=COMPLETED):
    return storage.add_walkin(
        {"contact_number": contact, "order_status": status, "total_amount": 20.0, "final_amount": 20.0},
        [
            {"menu_item_id": 3, "item_name": "Coffee", "quantity": 1, "unit_price": 20.0,
             "total_price": 20.0, "phone_number": contact}
            for _ in range(items)
        ],
    )


class TestPushCompletedOrders:
    """Completed orders are reported by business id and then removed."""

    @pytest.mark.asyncio
    async def test_push_sends_nested_order_ids(self, reconciler, storage, backend, make_order):
        await _seed(reconciler, storage, backend, make_order, completed=[101, 102], placed=[103])

        result = await reconciler.push_completed_orders()

        assert backend.json_bodies("/order/updateOrderStatus") == [{"orderIds": [[5101, 5102]]}]
        assert result.pushed == [5101, 5102]
        assert result.deleted == 2
        assert storage.list_order_ids() == {103}
        assert storage.get_order_items(101) == []

    @pytest.mark.asyncio
    async def test_zero_updated_count_keeps_rows(self, reconciler, storage, backend, make_order):
        await _seed(reconciler, storage, backend, make_order, completed=[101])
        backend.order_ack = {"updatedCount": 0}

        result = await reconciler.push_completed_orders()

        assert not result.acknowledged
        assert result.deleted == 0
        assert storage.get_order(101)["status"] == COMPLETED

    @pytest.mark.asyncio
    async def test_updated_ids_limit_deletion(self, reconciler, storage, backend, make_order):
        await _seed(reconciler, storage, backend, make_order, completed=[101, 102])
        backend.order_ack = {"updatedCount": 1, "updatedIds": [5102]}

        result = await reconciler.push_completed_orders()

        assert result.deleted == 1
        assert storage.list_order_ids() == {101}

    @pytest.mark.asyncio
    async def test_nothing_to_push(self, reconciler, storage, backend, make_order):
        await _seed(reconciler, storage, backend, make_order, placed=[101])

        result = await reconciler.push_completed_orders()

        assert result.pushed == []
        assert backend.calls("/order/updateOrderStatus") == []

    @pytest.mark.asyncio
    async def test_order_completed_during_push_survives(self, reconciler, storage, backend, make_order):
        """Rows completed after the scan are not deleted by this cycle's ack."""
        await _seed(reconciler, storage, backend, make_order, completed=[101], placed=[102])
        default_handler = backend.handler

        def complete_102_then_ack(request):
            if request.url.path.endswith("/order/updateOrderStatus"):
                storage.update_order_status(102, COMPLETED)
            return default_handler(request)

        reconciler.gateway._transport = httpx.MockTransport(complete_102_then_ack)

        await reconciler.push_completed_orders()

        assert storage.list_order_ids() == {102}
        assert storage.get_order(102)["status"] == COMPLETED

    @pytest.mark.asyncio
    async def test_network_failure_keeps_rows(self, reconciler, storage, backend, make_order):
        await _seed(reconciler, storage, backend, make_order, completed=[101])
        backend.responses["/order/updateOrderStatus"] = (503, {"message": "down"})

        with pytest.raises(NetworkFailure):
            await reconciler.push_completed_orders()
        assert storage.get_order(101)["status"] == COMPLETED

    @pytest.mark.asyncio
    async def test_malformed_ack_keeps_rows(self, reconciler, storage, backend, make_order):
        await _seed(reconciler, storage, backend, make_order, completed=[101])
        backend.responses["/order/updateOrderStatus"] = (200, {"ok": True})

        with pytest.raises(MalformedResponse):
            await reconciler.push_completed_orders()
        assert storage.list_order_ids() == {101}


class TestPushCompletedWalkins:
    """Walk-ins travel with their items, joined by walk-in id."""

    @pytest.mark.asyncio
    async def test_walkin_payload_carries_items(self, reconciler, storage, backend):
        walkin_id = _walkin(storage, items=2)

        result = await reconciler.push_completed_walkins()

        body = backend.json_bodies("/walkin/updateOrderStatus")[0]
        assert len(body["orders"]) == 1
        sent = body["orders"][0]
        assert sent["id"] == walkin_id
        assert sent["contactNumber"] == "9876543210"
        assert sent["paymentMethod"] == "Cash"
        assert [item["walkinId"] for item in sent["orderItems"]] == [walkin_id, walkin_id]
        assert result.deleted == 1
        assert storage.list_walkins() == []
        assert storage.get_walkin_items(walkin_id) == []

    @pytest.mark.asyncio
    async def test_items_join_by_walkin_not_phone(self, reconciler, storage, backend):
        """Two walk-ins from the same phone number keep their own items."""
        first = _walkin(storage, items=1)
        second = _walkin(storage, items=2)

        await reconciler.push_completed_walkins()

        sent = {w["id"]: w for w in backend.json_bodies("/walkin/updateOrderStatus")[0]["orders"]}
        assert len(sent[first]["orderItems"]) == 1
        assert len(sent[second]["orderItems"]) == 2

    @pytest.mark.asyncio
    async def test_batch_size_limits_push(self, reconciler, storage, backend):
        ids = [_walkin(storage, contact=f"90000000{n:02d}") for n in range(12)]

        first = await reconciler.push_completed_walkins()
        second = await reconciler.push_completed_walkins()

        assert first.pushed == ids[:10]
        assert second.pushed == ids[10:]
        assert storage.list_walkins() == []

    @pytest.mark.asyncio
    async def test_walkin_without_items_is_not_sent(self, reconciler, storage, backend):
        empty = _walkin(storage, items=0)
        full = _walkin(storage, items=1)

        result = await reconciler.push_completed_walkins()

        assert result.pushed == [full]
        assert [w["id"] for w in storage.list_walkins()] == [empty]

    @pytest.mark.asyncio
    async def test_zero_ack_keeps_walkins(self, reconciler, storage, backend):
        walkin_id = _walkin(storage)
        backend.walkin_ack = {"updatedCount": 0}

        result = await reconciler.push_completed_walkins()

        assert result.deleted == 0
        assert storage.get_walkin(walkin_id) is not None

    @pytest.mark.asyncio
    async def test_pending_walkins_are_not_pushed(self, reconciler, storage, backend):
        _walkin(storage, status=PLACED)

        result = await reconciler.push_completed_walkins()

        assert result.pushed == []
        assert backend.calls("/walkin/updateOrderStatus") == []

    @pytest.mark.asyncio
    async def test_partial_count_without_ids_is_logged(self, reconciler, storage, backend, caplog):
        """A short count with no ids still deletes the batch but leaves a warning."""
        _walkin(storage, contact="9000000001")
        _walkin(storage, contact="9000000002")
        backend.walkin_ack = {"updatedCount": 1}

        with caplog.at_level(logging.WARNING, logger="canteen_pos.services.sync"):
            result = await reconciler.push_completed_walkins()

        assert result.deleted == 2
        assert storage.list_walkins() == []
        assert "updated 1 of 2 walk-ins" in caplog.text
