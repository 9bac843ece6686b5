"""
Pydantic Schemas for Request/Response Validation

Field names are snake_case in Python and camelCase on the wire, which is
what the cashier, kitchen, waitress and customer apps send and expect.
The same schemas serialize REST responses and Socket.IO payloads.
"""

from datetime import datetime
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from smart_pos.models import (
    KitchenPriority,
    MenuCategory,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TableStatus,
    TransactionStatus,
)

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, for socket events."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderLineCreate(CamelModel):
    """Single line of a new order, referencing a menu item by id."""
    id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    notes: Optional[str] = Field(None, max_length=200)


class OrderCreate(CamelModel):
    """Request schema for creating a new order."""
    items: List[OrderLineCreate] = Field(..., min_length=1)
    table_number: Optional[int] = Field(None, ge=1)
    customer_name: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)
    qr_code: Optional[str] = Field(None, max_length=50)


class StatusUpdate(CamelModel):
    status: OrderStatus


class PriorityUpdate(CamelModel):
    priority: KitchenPriority


class KitchenStatusUpdate(CamelModel):
    """Payload of the ``kitchen:update-status`` socket event."""
    order_id: str
    status: OrderStatus


class MenuItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    price: float = Field(..., gt=0)
    category: MenuCategory
    estimated_time: int = Field(default=0, ge=0)
    image: str = Field(default="")
    ingredients: Optional[List[str]] = None


class MenuItemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, gt=0)
    category: Optional[MenuCategory] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    image: Optional[str] = None
    available: Optional[bool] = None
    ingredients: Optional[List[str]] = None


class TableStatusUpdate(CamelModel):
    status: TableStatus


class PaymentRequest(CamelModel):
    order_id: str
    method: PaymentMethod
    amount: float = Field(..., gt=0)
    # Stripe payment method token from the card or QRIS terminal
    payment_method_id: Optional[str] = Field(None, max_length=255)


class RefundRequest(CamelModel):
    order_id: str
    amount: Optional[float] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=500)


class NotificationMessage(CamelModel):
    """Payload of the ``send-notification`` socket event."""
    type: Literal["info", "success", "warning", "error"] = "info"
    message: str = Field(..., min_length=1, max_length=500)
    target: Optional[str] = None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class MenuItemResponse(CamelModel):
    id: str
    name: str
    description: str
    price: float
    category: MenuCategory
    estimated_time: int
    image: str
    available: bool
    ingredients: Optional[List[str]] = None


class OrderLineResponse(MenuItemResponse):
    """Menu item snapshot with the ordered quantity."""
    quantity: int
    notes: Optional[str] = None


class OrderResponse(CamelModel):
    id: str
    table_number: Optional[int] = None
    customer_name: Optional[str] = None
    items: List[OrderLineResponse]
    status: OrderStatus
    total_amount: float
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    order_time: datetime
    estimated_ready_time: Optional[datetime] = None
    notes: Optional[str] = None
    qr_code: Optional[str] = None


class KitchenOrderResponse(OrderResponse):
    """Order as the kitchen sees it."""
    priority: KitchenPriority
    start_time: Optional[datetime] = None
    completed_time: Optional[datetime] = None
    assigned_chef: Optional[str] = None

    @classmethod
    def from_kitchen_order(cls, kitchen_order) -> "KitchenOrderResponse":
        base = OrderResponse.model_validate(kitchen_order.order).model_dump()
        return cls(
            **base,
            priority=kitchen_order.priority,
            start_time=kitchen_order.start_time,
            completed_time=kitchen_order.completed_time,
            assigned_chef=kitchen_order.assigned_chef,
        )


class StatusChange(CamelModel):
    """Payload of ``order:status-changed``."""
    order_id: str
    status: OrderStatus
    order: OrderResponse


class TableResponse(CamelModel):
    id: str
    number: int
    capacity: int
    status: TableStatus
    qr_code: str


class PaymentResponse(CamelModel):
    transaction_id: str
    order_id: str
    amount: float
    method: PaymentMethod
    status: TransactionStatus
    provider_reference: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class RefundResponse(CamelModel):
    refund_id: str
    order_id: str
    amount: float
    reason: Optional[str] = None
    status: str
    processed_at: datetime


class PopularItem(CamelModel):
    name: str
    count: int


class DashboardResponse(CamelModel):
    total_sales: float
    total_orders: int
    average_order_value: float
    orders_by_status: dict[str, int]
    popular_items: List[PopularItem]
    recent_orders: List[OrderResponse]


class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    timestamp: datetime
    uptime: float
    database: str
    redis: str
    payment_service: str


class Envelope(CamelModel, Generic[T]):
    """Standard success envelope."""
    success: bool = True
    data: T
    total: Optional[int] = None
    message: Optional[str] = None


class ErrorResponse(CamelModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
