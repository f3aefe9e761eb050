import json
import os
import sys
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
# Module-level app must not create canteen.db in the working directory
os.environ.setdefault("STORAGE_BACKEND", "inmemory")

from canteen_pos.config import Settings
from canteen_pos.errors import PrintFailure
from canteen_pos.gateway import OrderGateway
from canteen_pos.main import create_app
from canteen_pos.printing import Printer, Receipt
from canteen_pos.services.completion import OrderCompletionWorkflow
from canteen_pos.services.summary import SummaryAggregator
from canteen_pos.services.sync import SyncReconciler
from canteen_pos.services.walkins import WalkinService
from canteen_pos.session import CanteenSession
from canteen_pos.storage import InMemoryStorage

BASE_URL = "http://backend.test/api"
CANTEEN_ID = 7


class FakeBackend:
    """
    Scripted canteen backend behind httpx.MockTransport.

    Status pushes are acknowledged for every id unless order_ack or
    walkin_ack is set. Paths listed in responses override the default
    handler with (status_code, body).
    """

    def __init__(self):
        self.orders: List[Dict[str, Any]] = []
        self.menus: Dict[int, Dict[str, Any]] = {}
        self.catalog: List[Dict[str, Any]] = []
        self.dashboard: Dict[str, Any] = {}
        self.order_ack: Optional[Dict[str, Any]] = None
        self.walkin_ack: Optional[Dict[str, Any]] = None
        self.responses: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []

    def calls(self, suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def json_bodies(self, suffix: str) -> List[Any]:
        return [json.loads(r.content) for r in self.calls(suffix)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len("/api"):]

        if path in self.responses:
            status, body = self.responses[path]
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)

        if path.startswith("/order/getTodaysOrdersByCanteen/"):
            return httpx.Response(200, json={"data": self.orders})
        if path == "/order/updateOrderStatus":
            ids = json.loads(request.content)["orderIds"][0]
            return httpx.Response(200, json={"data": self.order_ack or {"updatedCount": len(ids)}})
        if path == "/walkin/updateOrderStatus":
            orders = json.loads(request.content)["orders"]
            return httpx.Response(200, json={"data": self.walkin_ack or {"updatedCount": len(orders)}})
        if path == "/menu/getMenuById":
            menu = self.menus.get(int(request.url.params["id"]))
            return httpx.Response(200, json={"data": menu})
        if path == "/item/getItems":
            return httpx.Response(200, json={"data": self.catalog})
        if path == "/adminDasboard/dashboard":
            return httpx.Response(200, json={"data": self.dashboard})
        return httpx.Response(404, json={"message": "not found"})


class RecordingPrinter(Printer):
    """Collects receipts instead of printing; set fail to simulate a jam."""

    def __init__(self):
        self.receipts: List[Receipt] = []
        self.fail = False

    async def print_receipt(self, receipt: Receipt) -> None:
        if self.fail:
            raise PrintFailure("printer offline")
        self.receipts.append(receipt)


def remote_item(item_pk, order_id, item_id, quantity, price, name):
    return {
        "id": item_pk,
        "orderId": order_id,
        "itemId": item_id,
        "quantity": quantity,
        "price": price,
        "total": quantity * price,
        "createdAt": 1718000000000,
        "updatedAt": 1718000000000,
        "menuItemItem": {"id": item_id, "name": name},
    }


@pytest.fixture
def make_order():
    """
    Factory for backend order payloads.

    items is a list of (item_id, quantity, price, name); item primary keys
    are derived from the order id.
    """

    def _make(order_pk, items, status="placed", menu_configuration_id=1, order_id=None):
        order_id = order_id if order_id is not None else order_pk
        return {
            "id": order_pk,
            "userId": 11,
            "totalAmount": sum(q * p for _, q, p, _ in items),
            "status": status,
            "canteenId": CANTEEN_ID,
            "menuConfigurationId": menu_configuration_id,
            "createdById": 11,
            "updatedById": 11,
            "qrCode": f"QR{order_pk}",
            "createdAt": "2024-06-10T04:30:00.000Z",
            "updatedAt": "2024-06-10T04:30:00.000Z",
            "orderItems": [
                remote_item(order_pk * 100 + n, order_id, item_id, quantity, price, name)
                for n, (item_id, quantity, price, name) in enumerate(items, start=1)
            ],
        }

    return _make


@pytest.fixture
def storage():
    """Create fresh storage instance for each test."""
    return InMemoryStorage()


@pytest.fixture
def session():
    s = CanteenSession()
    s.login("test-token", CANTEEN_ID, "Main Canteen")
    return s


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def gateway(session, backend):
    return OrderGateway(BASE_URL, session, transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def printer():
    return RecordingPrinter()


@pytest.fixture
def summary(storage):
    return SummaryAggregator(storage)


@pytest.fixture
def reconciler(storage, gateway, session, summary):
    return SyncReconciler(storage, gateway, session, summary=summary, walkin_batch_size=10)


@pytest.fixture
def workflow(storage, printer):
    return OrderCompletionWorkflow(storage, printer)


@pytest.fixture
def walkins(storage, printer):
    return WalkinService(storage, printer)


@pytest.fixture
def app(storage, gateway, printer):
    return create_app(
        storage=storage,
        gateway=gateway,
        printer=printer,
        settings=Settings(storage_backend="inmemory"),
    )


@pytest_asyncio.fixture
async def async_client(app):
    """Create async HTTP client for testing."""
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
