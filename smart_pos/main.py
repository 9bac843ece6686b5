"""
FastAPI Application Entry Point

Smart PoS - restaurant point-of-sale backend for the customer, cashier,
kitchen and waitress apps. REST for reads and commands, Socket.IO for
live updates; both share one in-memory order store.

Endpoints:
    - GET  /api/health: System health check
    - /api/menu: Menu catalogue (CRUD)
    - /api/orders: Orders, kitchen queue, dashboard analytics
    - /api/tables: Dining tables and QR lookup
    - /api/payments: Payment processing and refunds

Run with:
    uvicorn smart_pos.main:asgi_app --port 3000
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from datetime import datetime
from typing import List, Optional

import redis
import socketio
from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from smart_pos.core.config import get_settings, setup_logging
from smart_pos.core.exceptions import PosError
from smart_pos.database import dispose_db, get_db, init_db, session_scope
from smart_pos.models import OrderStatus, TableStatus
from smart_pos.realtime.handlers import setup_socket_handlers
from smart_pos.realtime.hub import sio
from smart_pos.realtime.simulator import run_status_simulator
from smart_pos.schemas import (
    DashboardResponse,
    Envelope,
    ErrorResponse,
    HealthResponse,
    KitchenOrderResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    OrderCreate,
    OrderResponse,
    PaymentRequest,
    PaymentResponse,
    PriorityUpdate,
    RefundRequest,
    RefundResponse,
    StatusUpdate,
    TableResponse,
    TableStatusUpdate,
)
from smart_pos.seed import seed_store
from smart_pos.services import analytics, menu, orders, settlement, tables
from smart_pos.services.payment import get_payment_gateway

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Order store initialized")

    if settings.seed_sample_data:
        async with session_scope() as db:
            await seed_store(db)
        logger.info("✅ Sample data loaded")

    gateway = get_payment_gateway()
    logger.info(f"✅ Payment Service: {gateway.provider_name}")
    logger.info(f"✅ Socket rooms: {', '.join(settings.socket_rooms_list)}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    simulator = None
    if settings.simulate_status_changes:
        simulator = asyncio.create_task(
            run_status_simulator(settings.simulation_interval_seconds)
        )
        logger.info("✅ Status simulator started")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    if simulator is not None:
        simulator.cancel()
        with suppress(asyncio.CancelledError):
            await simulator
    await dispose_db()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant point-of-sale backend: menu, tables, orders, kitchen "
        "queue and payments, with live updates over Socket.IO."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


setup_socket_handlers(sio)

# Socket.IO in front, everything else handed to FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    content = {"success": False, "error": error}
    if detail is not None:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, error)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    return error_response(
        500,
        "Internal Server Error",
        str(exc) if settings.debug else None,
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/api/health",
    }


def _ping_redis() -> None:
    client = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
    try:
        client.ping()
    finally:
        client.close()


@app.get(
    "/api/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check() -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        async with session_scope() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"unhealthy: {e}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        await asyncio.to_thread(_ping_redis)
    except redis.RedisError as e:
        redis_status = f"unhealthy: {e}"
        logger.warning(f"Redis health check failed: {e}")

    gateway = get_payment_gateway()
    payment_status = "healthy" if await gateway.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, payment_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(),
        uptime=round(time.monotonic() - STARTED_AT, 3),
        database=db_status,
        redis=redis_status,
        payment_service=payment_status,
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu",
    response_model=Envelope[List[MenuItemResponse]],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def list_menu(
    category: Optional[str] = Query(None, description="fast-track, main-course, dessert or all"),
    available: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[MenuItemResponse]]:
    items = await menu.list_items(db, category=category, available=available)
    return Envelope(
        data=[MenuItemResponse.model_validate(i) for i in items],
        total=len(items),
    )


@app.get(
    "/api/menu/{item_id}",
    response_model=Envelope[MenuItemResponse],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def get_menu_item(
    item_id: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[MenuItemResponse]:
    item = await menu.get_item(db, item_id)
    return Envelope(data=MenuItemResponse.model_validate(item))


@app.post(
    "/api/menu",
    status_code=201,
    response_model=Envelope[MenuItemResponse],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def create_menu_item(
    data: MenuItemCreate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[MenuItemResponse]:
    item = await menu.create_item(db, data)
    return Envelope(
        data=MenuItemResponse.model_validate(item),
        message="Menu item created",
    )


@app.put(
    "/api/menu/{item_id}",
    response_model=Envelope[MenuItemResponse],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def update_menu_item(
    item_id: str,
    data: MenuItemUpdate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[MenuItemResponse]:
    item = await menu.update_item(db, item_id, data)
    return Envelope(
        data=MenuItemResponse.model_validate(item),
        message="Menu item updated",
    )


@app.delete(
    "/api/menu/{item_id}",
    response_model=Envelope[MenuItemResponse],
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def delete_menu_item(
    item_id: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[MenuItemResponse]:
    item = await menu.delete_item(db, item_id)
    return Envelope(
        data=MenuItemResponse.model_validate(item),
        message="Menu item deleted",
    )


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.get(
    "/api/orders/kitchen/queue",
    response_model=Envelope[List[KitchenOrderResponse]],
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
    summary="Kitchen Queue",
)
async def get_kitchen_queue(
    status: Optional[OrderStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[KitchenOrderResponse]]:
    """Kitchen tickets, urgent first, then oldest first."""
    tickets = await orders.kitchen_queue(db, status=status)
    return Envelope(
        data=[KitchenOrderResponse.from_kitchen_order(t) for t in tickets],
        total=len(tickets),
    )


@app.put(
    "/api/orders/kitchen/{order_id}/priority",
    response_model=Envelope[KitchenOrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def update_kitchen_priority(
    order_id: str,
    data: PriorityUpdate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[KitchenOrderResponse]:
    ticket = await orders.set_priority(db, order_id, data.priority)
    return Envelope(
        data=KitchenOrderResponse.from_kitchen_order(ticket),
        message="Priority updated",
    )


@app.get(
    "/api/orders/analytics/dashboard",
    response_model=Envelope[DashboardResponse],
    tags=["Analytics"],
)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
) -> Envelope[DashboardResponse]:
    return Envelope(data=await analytics.dashboard(db))


@app.get(
    "/api/orders",
    response_model=Envelope[List[OrderResponse]],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    table_number: Optional[int] = Query(None, alias="tableNumber", ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[OrderResponse]]:
    """Orders newest first."""
    found = await orders.list_orders(
        db, status=status, table_number=table_number, limit=limit
    )
    return Envelope(
        data=[OrderResponse.model_validate(o) for o in found],
        total=len(found),
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=Envelope[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[OrderResponse]:
    order = await orders.get_order(db, order_id)
    return Envelope(data=OrderResponse.model_validate(order))


@app.post(
    "/api/orders",
    status_code=201,
    response_model=Envelope[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[OrderResponse]:
    """
    Place an order from the customer app or the cashier.

    Lines reference menu items by id; prices and names are taken from the
    menu at the time of ordering.
    """
    order = await orders.create_order(db, data)
    return Envelope(
        data=OrderResponse.model_validate(order),
        message="Order created successfully",
    )


@app.put(
    "/api/orders/{order_id}/status",
    response_model=Envelope[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def update_order_status(
    order_id: str,
    data: StatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[OrderResponse]:
    order = await orders.update_status(db, order_id, data.status)
    return Envelope(
        data=OrderResponse.model_validate(order),
        message=f"Order status updated to {order.status.value}",
    )


@app.post(
    "/api/orders/{order_id}/send-to-kitchen",
    response_model=Envelope[KitchenOrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def send_order_to_kitchen(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[KitchenOrderResponse]:
    ticket = await orders.send_to_kitchen(db, order_id)
    return Envelope(
        data=KitchenOrderResponse.from_kitchen_order(ticket),
        message="Order sent to kitchen",
    )


# =============================================================================
# TABLE ENDPOINTS
# =============================================================================

@app.get(
    "/api/tables",
    response_model=Envelope[List[TableResponse]],
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def list_tables(
    status: Optional[TableStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[TableResponse]]:
    found = await tables.list_tables(db, status=status)
    return Envelope(
        data=[TableResponse.model_validate(t) for t in found],
        total=len(found),
    )


@app.get(
    "/api/tables/qr/{qr_code}",
    response_model=Envelope[TableResponse],
    responses=ERROR_RESPONSES,
    tags=["Tables"],
    summary="Resolve Table QR Code",
)
async def get_table_by_qr(
    qr_code: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[TableResponse]:
    table = await tables.get_table_by_qr(db, qr_code)
    return Envelope(data=TableResponse.model_validate(table))


@app.get(
    "/api/tables/{table_id}",
    response_model=Envelope[TableResponse],
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def get_table(
    table_id: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[TableResponse]:
    table = await tables.get_table(db, table_id)
    return Envelope(data=TableResponse.model_validate(table))


@app.put(
    "/api/tables/{table_id}/status",
    response_model=Envelope[TableResponse],
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def update_table_status(
    table_id: str,
    data: TableStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[TableResponse]:
    table = await tables.update_status(db, table_id, data.status)
    return Envelope(
        data=TableResponse.model_validate(table),
        message=f"Table status updated to {table.status.value}",
    )


# =============================================================================
# PAYMENT ENDPOINTS
# =============================================================================

@app.post(
    "/api/payments/process",
    response_model=Envelope[PaymentResponse],
    responses=ERROR_RESPONSES,
    tags=["Payments"],
    summary="Process Payment",
)
async def process_payment(
    data: PaymentRequest,
    background_tasks: BackgroundTasks,
) -> Envelope[PaymentResponse]:
    """
    Record the payment and answer with it in "processing" state.

    Settlement runs after the response; the outcome arrives as
    ``payment:completed`` or ``payment:failed``.
    """
    # The store session must be closed before the settlement task starts
    async with session_scope() as db:
        payment = await settlement.start_payment(db, data)

    background_tasks.add_task(
        settlement.settle_payment,
        payment.transaction_id,
        data.payment_method_id,
    )

    return Envelope(
        data=PaymentResponse.model_validate(payment),
        message="Payment processing",
    )


@app.get(
    "/api/payments/{transaction_id}",
    response_model=Envelope[PaymentResponse],
    responses=ERROR_RESPONSES,
    tags=["Payments"],
)
async def get_payment(
    transaction_id: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[PaymentResponse]:
    payment = await settlement.get_payment(db, transaction_id)
    return Envelope(data=PaymentResponse.model_validate(payment))


@app.post(
    "/api/payments/refund",
    response_model=Envelope[RefundResponse],
    responses=ERROR_RESPONSES,
    tags=["Payments"],
)
async def refund_payment(data: RefundRequest) -> Envelope[RefundResponse]:
    """Refund a paid order; the gateway call runs outside the store session."""
    refund = await settlement.refund_order(data)
    return Envelope(
        data=RefundResponse.model_validate(refund),
        message="Refund processed",
    )
