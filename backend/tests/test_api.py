"""
Integration tests for the HTTP API.

Runs the FastAPI app over httpx.ASGITransport with in-memory storage, the
scripted backend and a recording printer.
"""

import warnings

import pytest

from canteen_pos.config import Settings
from canteen_pos.main import create_app
from canteen_pos.storage import COMPLETED, PLACED, InMemoryStorage


class ClosingStorage(InMemoryStorage):
    def __init__(self):
        super().__init__()
        self.closed = False

    def close(self):
        self.closed = True


class TestSessionApi:
    @pytest.mark.asyncio
    async def test_login_logout_cycle(self, async_client, session):
        session.logout()

        response = await async_client.post(
            "/api/session", json={"token": "fresh", "canteen_id": 9, "canteen_name": "South"}
        )
        assert response.status_code == 200
        assert response.json() == {"active": True, "canteen_id": 9, "canteen_name": "South"}
        assert session.require_token() == "fresh"

        response = await async_client.delete("/api/session")
        assert response.json()["active"] is False

        response = await async_client.get("/api/session")
        assert response.json()["canteen_id"] is None

    @pytest.mark.asyncio
    async def test_empty_token(self, async_client):
        response = await async_client.post("/api/session", json={"token": "", "canteen_id": 9})

        assert response.status_code == 401


class TestSyncApi:
    @pytest.mark.asyncio
    async def test_full_cycle(self, async_client, backend, make_order):
        backend.orders = [make_order(101, [(1, 2, 50.0, "Idli")]), make_order(102, [])]

        response = await async_client.post("/api/sync")

        assert response.status_code == 200
        body = response.json()
        assert body["pull"]["inserted"] == [101]
        assert body["pull"]["skipped_empty"] == [102]
        assert body["orders"]["pushed"] == []

    @pytest.mark.asyncio
    async def test_pull_with_refresh(self, async_client, backend, storage, make_order):
        backend.orders = [make_order(101, [(1, 2, 50.0, "Idli")])]
        await async_client.post("/api/sync/orders/pull")
        backend.orders = [make_order(101, [(1, 5, 50.0, "Idli")])]

        response = await async_client.post("/api/sync/orders/pull", json={"refresh_ids": [101]})

        assert response.json()["refreshed"] == [101]
        assert storage.get_order_items(101)[0]["quantity"] == 5

    @pytest.mark.asyncio
    async def test_push_orders(self, async_client, backend, storage, make_order):
        backend.orders = [make_order(101, [(1, 2, 50.0, "Idli")])]
        await async_client.post("/api/sync/orders/pull")
        storage.update_order_status(101, COMPLETED)

        response = await async_client.post("/api/sync/orders/push")

        assert response.json() == {"pushed": [101], "updated_count": 1, "deleted": 1, "acknowledged": True}

    @pytest.mark.asyncio
    async def test_push_walkins_empty(self, async_client):
        response = await async_client.post("/api/sync/walkins/push")

        assert response.status_code == 200
        assert response.json()["pushed"] == []

    @pytest.mark.asyncio
    async def test_menu_and_catalog(self, async_client, backend, storage):
        backend.menus[2] = {
            "id": 2,
            "name": "Snacks",
            "menuItems": [{"itemId": 4, "minQuantity": 1, "maxQuantity": 3,
                           "item": {"name": "Samosa", "pricing": {"price": 15}}}],
        }
        backend.catalog = [{"id": 4, "name": "Samosa", "quantity": 50, "pricing": {"price": 15}}]

        menu = await async_client.post("/api/sync/menu/2")
        catalog = await async_client.post("/api/sync/catalog")

        assert menu.json() == {"menu_id": 2, "items": 1}
        assert catalog.json() == {"items": 1}
        items = (await async_client.get("/api/menu/items")).json()
        assert [(i["menu_id"], i["item_name"]) for i in items] == [(2, "Samosa"), (None, "Samosa")]
        cached = await async_client.get("/api/menu/2")
        assert cached.json()["menu"]["name"] == "Snacks"

    @pytest.mark.asyncio
    async def test_uncached_menu(self, async_client):
        response = await async_client.get("/api/menu/5")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_backend(self, async_client, backend):
        backend.responses["/order/getTodaysOrdersByCanteen/7"] = (200, {"nothing": True})

        response = await async_client.post("/api/sync")

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_expired_session(self, async_client, backend, session):
        backend.responses["/order/getTodaysOrdersByCanteen/7"] = (401, {"message": "Invalid or expired token"})

        response = await async_client.post("/api/sync/orders/pull")

        assert response.status_code == 401
        assert not session.is_active

    @pytest.mark.asyncio
    async def test_not_logged_in(self, async_client, session):
        session.logout()

        response = await async_client.post("/api/sync")

        assert response.status_code == 401


class TestOrdersApi:
    @pytest.mark.asyncio
    async def test_complete_flow(self, async_client, backend, printer, make_order):
        backend.orders = [make_order(101, [(1, 2, 50.0, "Idli"), (2, 1, 30.0, "Vada")])]
        await async_client.post("/api/sync/orders/pull")

        lookup = await async_client.get("/api/orders/NV101")
        assert lookup.json()["order"]["status"] == PLACED

        response = await async_client.post("/api/orders/101/complete")
        assert response.status_code == 200
        assert response.json()["receipt"]["total"] == 130
        assert len(printer.receipts) == 1

        again = await async_client.post("/api/orders/101/complete")
        assert again.status_code == 409

        completed = await async_client.get("/api/orders", params={"status": COMPLETED})
        assert [o["id"] for o in completed.json()] == [101]

    @pytest.mark.asyncio
    async def test_unknown_order(self, async_client):
        response = await async_client.post("/api/orders/404/complete")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_superscript_identifier(self, async_client):
        response = await async_client.get("/api/orders/²")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_print_failure(self, async_client, backend, printer, storage, make_order):
        backend.orders = [make_order(101, [(1, 2, 50.0, "Idli")])]
        await async_client.post("/api/sync/orders/pull")
        printer.fail = True

        response = await async_client.post("/api/orders/101/complete")

        assert response.status_code == 502
        assert storage.get_order(101)["status"] == PLACED

    @pytest.mark.asyncio
    async def test_summary_endpoints(self, async_client, backend, make_order):
        backend.orders = [
            make_order(1, [(5, 2, 10.0, "Poha")]),
            make_order(2, [(5, 3, 10.0, "Poha")]),
        ]
        await async_client.post("/api/sync/orders/pull")
        await async_client.post("/api/orders/2/complete")

        items = (await async_client.get("/api/summary/items")).json()
        counts = (await async_client.get("/api/summary/counts")).json()

        assert items == [{
            "menu_configuration_id": 1, "item_id": 5, "item_name": "Poha",
            "total_qty": 5, "completed_qty": 3,
        }]
        assert counts == {"placed": 1, "completed": 1, "cancelled": 0, "total": 2}

    @pytest.mark.asyncio
    async def test_dashboard(self, async_client, backend):
        backend.dashboard = {"totalOrders": 4, "totalAmount": 420.0}

        response = await async_client.get("/api/dashboard")

        assert response.json()["total_orders"] == 4
        assert response.json()["total_amount"] == 420.0


class TestWalkinsApi:
    @pytest.mark.asyncio
    async def test_create_and_list(self, async_client, storage):
        storage.save_menu({"menu_id": 1}, [{"item_id": 3, "item_name": "Coffee", "price": 20.0}])
        item_pk = storage.list_menu_items(menu_id=1)[0]["id"]

        response = await async_client.post(
            "/api/walkins",
            json={"contact_number": "9876543210", "items": [{"menu_item_id": item_pk, "quantity": 2}]},
        )

        assert response.status_code == 201
        assert response.json()["walkin"]["total_amount"] == 40.0
        listed = (await async_client.get("/api/walkins")).json()
        assert [w["contact_number"] for w in listed] == ["9876543210"]

    @pytest.mark.asyncio
    async def test_invalid_walkin(self, async_client):
        response = await async_client.post("/api/walkins", json={"contact_number": "123", "items": []})

        assert response.status_code == 422


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, async_client):
        response = await async_client.get("/health")

        assert response.json() == {"status": "ok", "session": True}


class TestLifespan:
    def test_no_deprecated_startup_hooks(self, gateway, printer):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            create_app(storage=InMemoryStorage(), gateway=gateway, printer=printer,
                       settings=Settings(storage_backend="inmemory"))

    @pytest.mark.asyncio
    async def test_shutdown_closes_storage(self, gateway, printer):
        storage = ClosingStorage()
        app = create_app(storage=storage, gateway=gateway, printer=printer,
                         settings=Settings(storage_backend="inmemory"))

        async with app.router.lifespan_context(app):
            assert not storage.closed

        assert storage.closed
