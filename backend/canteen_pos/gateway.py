"""
Remote Order Gateway: async HTTP client for the canteen backend.

Stateless apart from its configuration. Every call opens its own
httpx.AsyncClient, authenticates with the token held by the
CanteenSession, and turns transport problems into NetworkFailure and
unexpected payloads into MalformedResponse.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from canteen_pos.errors import MalformedResponse, NetworkFailure, SessionExpired
from canteen_pos.schemas import (
    DashboardStats,
    PushAck,
    RemoteCatalogItem,
    RemoteMenu,
    RemoteOrder,
)
from canteen_pos.session import CanteenSession

logger = logging.getLogger(__name__)

EXPIRED_TOKEN_MESSAGE = "Invalid or expired token"


class OrderGateway:
    """Client for the order, walk-in, menu and dashboard endpoints."""

    def __init__(
        self,
        base_url: str,
        session: CanteenSession,
        timeout_s: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout_s = timeout_s
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        h.update(self.session.auth_headers())
        return h

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        headers = self._headers()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as c:
                r = await c.request(method, url, headers=headers, json=json, params=params)
        except httpx.HTTPError as e:
            raise NetworkFailure(f"{method} {path} failed: {e}") from e

        if r.status_code == 401:
            self._expire()
            raise SessionExpired(f"{method} {path} rejected the session token")
        try:
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkFailure(f"{method} {path} failed: HTTP {r.status_code}") from e

        try:
            body = r.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path} returned non-JSON body") from e

        if isinstance(body, dict) and body.get("message") == EXPIRED_TOKEN_MESSAGE:
            self._expire()
            raise SessionExpired(EXPIRED_TOKEN_MESSAGE)
        return body

    def _expire(self) -> None:
        logger.warning("Backend rejected the session token; logging out")
        self.session.logout()

    @staticmethod
    def _data(body: Any, path: str) -> Any:
        if not isinstance(body, dict) or "data" not in body:
            raise MalformedResponse(f"{path}: expected an object with a 'data' field")
        return body["data"]

    # ---------- Orders ----------

    async def fetch_todays_orders(self, canteen_id: int) -> List[RemoteOrder]:
        """GET today's orders for a canteen. Expects {"data": [order, ...]}."""
        path = f"/order/getTodaysOrdersByCanteen/{canteen_id}"
        data = self._data(await self._request("GET", path), path)
        if not isinstance(data, list):
            raise MalformedResponse(f"{path}: expected 'data' to be an array of orders")
        try:
            orders = [RemoteOrder.model_validate(entry) for entry in data]
        except ValidationError as e:
            raise MalformedResponse(f"{path}: invalid order payload: {e}") from e
        logger.info(f"Fetched {len(orders)} orders for canteen {canteen_id}")
        return orders

    async def update_order_status(self, order_ids: Sequence[int]) -> PushAck:
        """POST completed order ids; the backend wants them as a nested list."""
        path = "/order/updateOrderStatus"
        body = await self._request("POST", path, json={"orderIds": [list(order_ids)]})
        return self._ack(body, path)

    # ---------- Walk-ins ----------

    async def update_walkin_status(self, walkins: List[Dict[str, Any]]) -> PushAck:
        """POST completed walk-ins, each carrying its orderItems."""
        path = "/walkin/updateOrderStatus"
        body = await self._request("POST", path, json={"orders": walkins})
        return self._ack(body, path)

    def _ack(self, body: Any, path: str) -> PushAck:
        data = self._data(body, path)
        if not isinstance(data, dict):
            raise MalformedResponse(f"{path}: expected 'data' to be an object")
        try:
            return PushAck.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(f"{path}: invalid acknowledgement: {e}") from e

    # ---------- Menu ----------

    async def fetch_menu(self, menu_id: int) -> RemoteMenu:
        path = "/menu/getMenuById"
        data = self._data(await self._request("GET", path, params={"id": menu_id}), path)
        if not data:
            raise MalformedResponse(f"{path}: no menu data for id {menu_id}")
        try:
            return RemoteMenu.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(f"{path}: invalid menu payload: {e}") from e

    async def fetch_item_catalog(self) -> List[RemoteCatalogItem]:
        path = "/item/getItems"
        data = self._data(await self._request("GET", path), path)
        if not isinstance(data, list):
            raise MalformedResponse(f"{path}: expected 'data' to be an array of items")
        try:
            return [RemoteCatalogItem.model_validate(entry) for entry in data]
        except ValidationError as e:
            raise MalformedResponse(f"{path}: invalid item payload: {e}") from e

    # ---------- Dashboard ----------

    async def fetch_dashboard(self) -> DashboardStats:
        path = "/adminDasboard/dashboard"
        data = self._data(await self._request("GET", path), path)
        try:
            return DashboardStats.model_validate(data or {})
        except ValidationError as e:
            raise MalformedResponse(f"{path}: invalid dashboard payload: {e}") from e
