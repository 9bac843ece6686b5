"""
SQLAlchemy Store Models

Menu, tables, orders and their kitchen view, payments and refunds.
A KitchenOrder carries only the kitchen-side fields; its status and
order details always come from the Order it belongs to.
"""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from smart_pos.database import Base


class MenuCategory(str, enum.Enum):
    FAST_TRACK = "fast-track"
    MAIN_COURSE = "main-course"
    DESSERT = "dessert"


class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    """Payment state of an order."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    QRIS = "qris"
    CARD = "card"


class TransactionStatus(str, enum.Enum):
    """State of a single payment attempt."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class KitchenPriority(str, enum.Enum):
    NORMAL = "normal"
    URGENT = "urgent"


def _enum(enum_cls):
    # Store the lowercase values, not the member names
    return Enum(enum_cls, values_callable=lambda e: [m.value for m in e])


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    category = Column(_enum(MenuCategory), nullable=False, index=True)
    estimated_time = Column(Integer, nullable=False, default=0)
    image = Column(String(500), nullable=False, default="")
    available = Column(Boolean, nullable=False, default=True)
    ingredients = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price}>"


class DiningTable(Base):
    __tablename__ = "tables"

    id = Column(String(36), primary_key=True)
    number = Column(Integer, nullable=False, unique=True, index=True)
    capacity = Column(Integer, nullable=False)
    status = Column(_enum(TableStatus), nullable=False, default=TableStatus.AVAILABLE)
    qr_code = Column(String(50), nullable=False, unique=True, index=True)

    def __repr__(self):
        return f"<Table #{self.number} - {self.status.value}>"


class Order(Base):
    """
    Main Order table.

    ``items`` holds line snapshots taken when the order was placed: the
    menu item fields plus ``quantity`` and optional ``notes``. Later menu
    edits do not change existing orders.
    """
    __tablename__ = "orders"

    id = Column(String(40), primary_key=True)
    table_number = Column(Integer, nullable=True, index=True)
    customer_name = Column(String(100), nullable=True)
    items = Column(JSON, nullable=False)
    status = Column(
        _enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    total_amount = Column(Float, nullable=False)
    payment_status = Column(
        _enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    payment_method = Column(_enum(PaymentMethod), nullable=True)
    payment_reference = Column(String(100), nullable=True)
    order_time = Column(DateTime, nullable=False, index=True)
    estimated_ready_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    qr_code = Column(String(50), nullable=True)

    kitchen_order = relationship(
        "KitchenOrder",
        back_populates="order",
        uselist=False,
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value}>"


class KitchenOrder(Base):
    """Kitchen ticket for an order; at most one per order."""
    __tablename__ = "kitchen_orders"

    order_id = Column(String(40), ForeignKey("orders.id"), primary_key=True)
    priority = Column(
        _enum(KitchenPriority),
        default=KitchenPriority.NORMAL,
        nullable=False,
    )
    start_time = Column(DateTime, nullable=True)
    completed_time = Column(DateTime, nullable=True)
    assigned_chef = Column(String(50), nullable=True)

    order = relationship("Order", back_populates="kitchen_order", lazy="selectin")

    def __repr__(self):
        return f"<KitchenOrder {self.order_id} - {self.priority.value}>"


class Payment(Base):
    __tablename__ = "payments"

    transaction_id = Column(String(40), primary_key=True)
    order_id = Column(String(40), ForeignKey("orders.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    method = Column(_enum(PaymentMethod), nullable=False)
    status = Column(
        _enum(TransactionStatus),
        default=TransactionStatus.PROCESSING,
        nullable=False,
    )
    provider_reference = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Payment {self.transaction_id} - {self.status.value}>"


class Refund(Base):
    __tablename__ = "refunds"

    refund_id = Column(String(40), primary_key=True)
    order_id = Column(String(40), ForeignKey("orders.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="completed")
    processed_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Refund {self.refund_id} - {self.order_id}>"
