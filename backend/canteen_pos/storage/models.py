"""
SQLAlchemy ORM models for the local order cache.

Six tables mirror what the counter terminal keeps offline: today's pre-paid
orders and their items, the synced menu and catalog, and walk-in orders
entered at the counter.
"""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from canteen_pos.utils.time_utils import to_iso

Base = declarative_base()


class OrderModel(Base):
    """Pre-paid order pulled from the backend."""

    __tablename__ = "orders"

    # Primary key comes from the backend, never generated locally
    id = Column(Integer, primary_key=True, autoincrement=False)
    order_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=True)
    total_amount = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="placed")  # placed / completed / cancelled
    canteen_id = Column(Integer, nullable=True)
    menu_configuration_id = Column(Integer, nullable=True)
    created_by_id = Column(Integer, nullable=True)
    updated_by_id = Column(Integer, nullable=True)
    qr_code = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_orders_status", "status"),
        Index("idx_orders_order_id", "order_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "total_amount": self.total_amount,
            "status": self.status,
            "canteen_id": self.canteen_id,
            "menu_configuration_id": self.menu_configuration_id,
            "created_by_id": self.created_by_id,
            "updated_by_id": self.updated_by_id,
            "qr_code": self.qr_code,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


class OrderItemModel(Base):
    """Line of a pre-paid order."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=True)
    item_name = Column(String, nullable=False, default="")
    created_by_id = Column(Integer, nullable=True)
    updated_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_order_items_order_id", "order_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
            "item_name": self.item_name,
            "created_by_id": self.created_by_id,
            "updated_by_id": self.updated_by_id,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


class MenuModel(Base):
    """Menu header synced from the backend."""

    __tablename__ = "menus"

    id = Column(Integer, primary_key=True, autoincrement=True)
    menu_id = Column(Integer, nullable=False)
    name = Column(String, nullable=True)
    description = Column(String, nullable=True)
    start_time = Column(BigInteger, nullable=True)
    end_time = Column(BigInteger, nullable=True)
    menu_configuration_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("menu_id", name="uq_menus_menu_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "menu_id": self.menu_id,
            "name": self.name,
            "description": self.description,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "menu_configuration_id": self.menu_configuration_id,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


class MenuItemModel(Base):
    """Sellable item in the local catalog."""

    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    menu_id = Column(Integer, nullable=True)  # None for catalog-wide items
    item_id = Column(Integer, nullable=False)
    item_name = Column(String, nullable=False, default="")
    min_quantity = Column(Integer, nullable=True)
    max_quantity = Column(Integer, nullable=True)
    price = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        UniqueConstraint("menu_id", "item_id", name="uq_menu_items_menu_item"),
        Index("idx_menu_items_item_id", "item_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "menu_id": self.menu_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "min_quantity": self.min_quantity,
            "max_quantity": self.max_quantity,
            "price": self.price,
        }


class WalkinModel(Base):
    """Counter order header, created locally and pushed later."""

    __tablename__ = "walkins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_name = Column(String, nullable=False, default="")
    contact_number = Column(String(20), nullable=False)
    number_of_people = Column(Integer, nullable=False, default=1)
    table_number = Column(String, nullable=False, default="")
    order_status = Column(String(20), nullable=False, default="completed")
    menu_id = Column(Integer, nullable=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    final_amount = Column(Float, nullable=False, default=0.0)
    payment_method = Column(String(20), nullable=False, default="Cash")
    payment_status = Column(String(20), nullable=False, default="unpaid")
    notes = Column(String, nullable=False, default="")
    created_by_id = Column(Integer, nullable=True)
    updated_by_id = Column(Integer, nullable=True)
    created_at = Column(BigInteger, nullable=True)  # epoch millis
    updated_at = Column(BigInteger, nullable=True)
    is_synced = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_walkins_status", "order_status"),
        Index("idx_walkins_contact", "contact_number"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "contact_number": self.contact_number,
            "number_of_people": self.number_of_people,
            "table_number": self.table_number,
            "order_status": self.order_status,
            "menu_id": self.menu_id,
            "total_amount": self.total_amount,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "final_amount": self.final_amount,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_by_id": self.created_by_id,
            "updated_by_id": self.updated_by_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_synced": self.is_synced,
        }


class WalkinItemModel(Base):
    """Line of a walk-in order."""

    __tablename__ = "walkin_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    walkin_id = Column(Integer, ForeignKey("walkins.id", ondelete="CASCADE"), nullable=False)
    menu_item_id = Column(Integer, nullable=True)
    item_name = Column(String, nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False, default=0.0)
    special_instructions = Column(String, nullable=False, default="")
    status = Column(String(20), nullable=False, default="pending")
    phone_number = Column(String(20), nullable=False, default="")
    created_at = Column(BigInteger, nullable=True)

    __table_args__ = (
        Index("idx_walkin_items_walkin_id", "walkin_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "walkin_id": self.walkin_id,
            "menu_item_id": self.menu_item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "special_instructions": self.special_instructions,
            "status": self.status,
            "phone_number": self.phone_number,
            "created_at": self.created_at,
        }
