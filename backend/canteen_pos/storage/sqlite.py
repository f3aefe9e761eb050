"""
SQLite storage implementation for the local order cache.

Uses SQLAlchemy 2.0 to provide persistent storage backed by SQLite.
Implements the Storage ABC with explicit transaction blocks; any
SQLAlchemy error surfaces as StorageFailure.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

from sqlalchemy import create_engine, delete, event, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from canteen_pos.errors import StorageFailure
from canteen_pos.storage.base import PLACED, Storage
from canteen_pos.storage.models import (
    Base,
    MenuItemModel,
    MenuModel,
    OrderItemModel,
    OrderModel,
    WalkinItemModel,
    WalkinModel,
)
from canteen_pos.utils.time_utils import parse_timestamp

logger = logging.getLogger(__name__)


def _order_columns(order: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": order["id"],
        "order_id": order.get("order_id") or order["id"],
        "user_id": order.get("user_id"),
        "total_amount": order.get("total_amount"),
        "status": order.get("status") or PLACED,
        "canteen_id": order.get("canteen_id"),
        "menu_configuration_id": order.get("menu_configuration_id"),
        "created_by_id": order.get("created_by_id"),
        "updated_by_id": order.get("updated_by_id"),
        "qr_code": order.get("qr_code"),
        "created_at": parse_timestamp(order.get("created_at")),
        "updated_at": parse_timestamp(order.get("updated_at")),
    }


def _order_item_columns(order_pk: int, item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": item["id"],
        "order_id": order_pk,
        "item_id": item["item_id"],
        "quantity": item.get("quantity") or 0,
        "price": item.get("price") or 0.0,
        "total": item.get("total"),
        "item_name": item.get("item_name") or "",
        "created_by_id": item.get("created_by_id"),
        "updated_by_id": item.get("updated_by_id"),
        "created_at": parse_timestamp(item.get("created_at")),
        "updated_at": parse_timestamp(item.get("updated_at")),
    }


class SQLiteStorage(Storage):
    """SQLite-backed storage implementation with transaction blocks."""

    def __init__(self, database_url: str = "sqlite:///canteen.db"):
        """
        Initialize SQLite storage.

        Args:
            database_url: SQLAlchemy database URL (default: sqlite:///canteen.db)
        """
        self.database_url = database_url
        is_sqlite = database_url.startswith("sqlite")

        # check_same_thread=False: the API serves requests from a thread pool
        self.engine = create_engine(
            self.database_url,
            connect_args={"check_same_thread": False} if is_sqlite else {},
            echo=False,
            future=True,
            pool_pre_ping=True,
        )

        if is_sqlite:
            # SQLite leaves foreign keys off unless asked per connection
            @event.listens_for(self.engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.SessionLocal = sessionmaker(bind=self.engine)

        # Idempotent "create if not exists"
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to create database tables: {e}") from e
        logger.info(f"[SQLiteStorage] Local store ready at {self.database_url}")

    def _get_session(self) -> Session:
        """Get a new database session (caller must close)."""
        return self.SessionLocal()

    @contextmanager
    def _session_scope(self, operation: str) -> Iterator[Session]:
        session = self._get_session()
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"[SQLiteStorage] {operation} failed: {e}")
            raise StorageFailure(f"{operation} failed: {e}") from e
        finally:
            session.close()

    # ---------- Orders ----------

    def list_order_ids(self) -> Set[int]:
        with self._session_scope("list_order_ids") as session:
            return set(session.execute(select(OrderModel.id)).scalars().all())

    def save_order(
        self,
        order: Dict[str, Any],
        items: List[Dict[str, Any]],
        replace: bool = False,
    ) -> None:
        """Store an order then its items. Wrapped in one transaction."""
        with self._session_scope("save_order") as session:
            with session.begin():
                columns = _order_columns(order)
                if replace:
                    session.merge(OrderModel(**columns))
                    session.execute(
                        delete(OrderItemModel).where(OrderItemModel.order_id == columns["id"])
                    )
                else:
                    session.add(OrderModel(**columns))
                # Parent row must exist before children are written
                session.flush()

                for item in items:
                    session.merge(OrderItemModel(**_order_item_columns(columns["id"], item)))

    def get_order(self, order_id: int) -> Optional[Dict[str, Any]]:
        with self._session_scope("get_order") as session:
            row = session.get(OrderModel, order_id)
            return row.to_dict() if row else None

    def get_order_items(self, order_id: int) -> List[Dict[str, Any]]:
        with self._session_scope("get_order_items") as session:
            stmt = (
                select(OrderItemModel)
                .where(OrderItemModel.order_id == order_id)
                .order_by(OrderItemModel.id)
            )
            return [row.to_dict() for row in session.execute(stmt).scalars().all()]

    def list_orders(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._session_scope("list_orders") as session:
            stmt = select(OrderModel).order_by(OrderModel.id)
            if status is not None:
                stmt = stmt.where(OrderModel.status == status)
            return [row.to_dict() for row in session.execute(stmt).scalars().all()]

    def update_order_status(self, order_id: int, status: str) -> bool:
        """Conditional placed -> status transition. Wrapped in transaction."""
        with self._session_scope("update_order_status") as session:
            with session.begin():
                result = session.execute(
                    update(OrderModel)
                    .where(OrderModel.id == order_id)
                    .where(OrderModel.status == PLACED)
                    .values(status=status)
                )
            return result.rowcount > 0

    def delete_orders(self, order_ids: Iterable[int]) -> int:
        ids = list(order_ids)
        if not ids:
            return 0
        with self._session_scope("delete_orders") as session:
            with session.begin():
                session.execute(delete(OrderItemModel).where(OrderItemModel.order_id.in_(ids)))
                result = session.execute(delete(OrderModel).where(OrderModel.id.in_(ids)))
            return result.rowcount

    def list_order_lines(self) -> List[Dict[str, Any]]:
        with self._session_scope("list_order_lines") as session:
            stmt = (
                select(
                    OrderModel.id,
                    OrderModel.status,
                    OrderModel.menu_configuration_id,
                    OrderItemModel.item_id,
                    OrderItemModel.item_name,
                    OrderItemModel.quantity,
                )
                .join(OrderItemModel, OrderItemModel.order_id == OrderModel.id)
                .order_by(OrderModel.id, OrderItemModel.id)
            )
            return [
                {
                    "order_id": row.id,
                    "status": row.status,
                    "menu_configuration_id": row.menu_configuration_id,
                    "item_id": row.item_id,
                    "item_name": row.item_name,
                    "quantity": row.quantity,
                }
                for row in session.execute(stmt).all()
            ]

    def count_orders_by_status(self) -> Dict[str, int]:
        with self._session_scope("count_orders_by_status") as session:
            stmt = select(OrderModel.status, func.count()).group_by(OrderModel.status)
            return {status: count for status, count in session.execute(stmt).all()}

    # ---------- Menus ----------

    def save_menu(self, menu: Dict[str, Any], items: List[Dict[str, Any]]) -> None:
        """Upsert menu header and items. Wrapped in transaction."""
        with self._session_scope("save_menu") as session:
            with session.begin():
                menu_id = menu["menu_id"]
                row = session.execute(
                    select(MenuModel).where(MenuModel.menu_id == menu_id)
                ).scalar_one_or_none()
                if row is None:
                    row = MenuModel(menu_id=menu_id)
                    session.add(row)
                row.name = menu.get("name")
                row.description = menu.get("description")
                row.start_time = menu.get("start_time")
                row.end_time = menu.get("end_time")
                row.menu_configuration_id = menu.get("menu_configuration_id")
                row.created_at = parse_timestamp(menu.get("created_at"))
                row.updated_at = parse_timestamp(menu.get("updated_at"))

                for item in items:
                    existing = session.execute(
                        select(MenuItemModel)
                        .where(MenuItemModel.menu_id == menu_id)
                        .where(MenuItemModel.item_id == item["item_id"])
                    ).scalar_one_or_none()
                    if existing is None:
                        existing = MenuItemModel(menu_id=menu_id, item_id=item["item_id"])
                        session.add(existing)
                    existing.item_name = item.get("item_name") or ""
                    existing.min_quantity = item.get("min_quantity")
                    existing.max_quantity = item.get("max_quantity")
                    existing.price = item.get("price") or 0.0

    def replace_catalog(self, items: List[Dict[str, Any]]) -> int:
        """Drop catalog-wide items and insert the new set. Wrapped in transaction."""
        with self._session_scope("replace_catalog") as session:
            with session.begin():
                session.execute(delete(MenuItemModel).where(MenuItemModel.menu_id.is_(None)))
                for item in items:
                    session.add(
                        MenuItemModel(
                            menu_id=None,
                            item_id=item["item_id"],
                            item_name=item.get("item_name") or "",
                            min_quantity=item.get("min_quantity"),
                            max_quantity=item.get("max_quantity"),
                            price=item.get("price") or 0.0,
                        )
                    )
            return len(items)

    def get_menu(self, menu_id: int) -> Optional[Dict[str, Any]]:
        with self._session_scope("get_menu") as session:
            row = session.execute(
                select(MenuModel).where(MenuModel.menu_id == menu_id)
            ).scalar_one_or_none()
            return row.to_dict() if row else None

    def list_menu_items(self, menu_id: Optional[int] = None) -> List[Dict[str, Any]]:
        with self._session_scope("list_menu_items") as session:
            stmt = select(MenuItemModel).order_by(MenuItemModel.id)
            if menu_id is not None:
                stmt = stmt.where(MenuItemModel.menu_id == menu_id)
            return [row.to_dict() for row in session.execute(stmt).scalars().all()]

    def get_menu_item(self, item_pk: int) -> Optional[Dict[str, Any]]:
        with self._session_scope("get_menu_item") as session:
            row = session.get(MenuItemModel, item_pk)
            return row.to_dict() if row else None

    # ---------- Walk-ins ----------

    def add_walkin(self, walkin: Dict[str, Any], items: List[Dict[str, Any]]) -> int:
        """Insert walk-in then its items. Wrapped in transaction."""
        with self._session_scope("add_walkin") as session:
            with session.begin():
                columns = {k: v for k, v in walkin.items() if k != "id"}
                row = WalkinModel(**columns)
                session.add(row)
                session.flush()
                walkin_id = row.id

                for item in items:
                    item_columns = {k: v for k, v in item.items() if k not in ("id", "walkin_id")}
                    session.add(WalkinItemModel(walkin_id=walkin_id, **item_columns))
            return walkin_id

    def get_walkin(self, walkin_id: int) -> Optional[Dict[str, Any]]:
        with self._session_scope("get_walkin") as session:
            row = session.get(WalkinModel, walkin_id)
            return row.to_dict() if row else None

    def get_walkin_items(self, walkin_id: int) -> List[Dict[str, Any]]:
        with self._session_scope("get_walkin_items") as session:
            stmt = (
                select(WalkinItemModel)
                .where(WalkinItemModel.walkin_id == walkin_id)
                .order_by(WalkinItemModel.id)
            )
            return [row.to_dict() for row in session.execute(stmt).scalars().all()]

    def list_walkins(
        self, status: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        with self._session_scope("list_walkins") as session:
            stmt = select(WalkinModel).order_by(WalkinModel.id)
            if status is not None:
                stmt = stmt.where(WalkinModel.order_status == status)
            if limit is not None:
                stmt = stmt.limit(limit)
            return [row.to_dict() for row in session.execute(stmt).scalars().all()]

    def delete_walkins(self, walkin_ids: Iterable[int]) -> int:
        ids = list(walkin_ids)
        if not ids:
            return 0
        with self._session_scope("delete_walkins") as session:
            with session.begin():
                session.execute(delete(WalkinItemModel).where(WalkinItemModel.walkin_id.in_(ids)))
                result = session.execute(delete(WalkinModel).where(WalkinModel.id.in_(ids)))
            return result.rowcount

    def has_completed_walkin(self, contact_number: str) -> bool:
        with self._session_scope("has_completed_walkin") as session:
            stmt = (
                select(func.count())
                .select_from(WalkinModel)
                .where(WalkinModel.contact_number == contact_number)
                .where(WalkinModel.order_status == "completed")
            )
            return session.execute(stmt).scalar_one() > 0

    # ---------- Lifecycle ----------

    def clear(self) -> None:
        """Clear all state. Wrapped in transaction."""
        with self._session_scope("clear") as session:
            with session.begin():
                # Children first so foreign keys hold
                session.execute(delete(OrderItemModel))
                session.execute(delete(OrderModel))
                session.execute(delete(WalkinItemModel))
                session.execute(delete(WalkinModel))
                session.execute(delete(MenuItemModel))
                session.execute(delete(MenuModel))

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()
