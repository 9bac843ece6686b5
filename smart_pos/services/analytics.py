"""
Dashboard Analytics

Sales figures for the cashier dashboard. Sales and order counts cover
today only; status counts and popular items cover every order in the
store.
"""

import logging
from collections import Counter
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_pos.models import Order, OrderStatus, PaymentStatus
from smart_pos.schemas import DashboardResponse, OrderResponse, PopularItem

logger = logging.getLogger(__name__)

POPULAR_ITEMS_LIMIT = 5
RECENT_ORDERS_LIMIT = 10


async def dashboard(db: AsyncSession) -> DashboardResponse:
    result = await db.execute(select(Order).order_by(Order.order_time.desc()))
    all_orders = list(result.scalars().all())

    midnight = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    today = [o for o in all_orders if o.order_time >= midnight]
    paid_today = [o for o in today if o.payment_status == PaymentStatus.PAID]

    total_sales = round(sum(o.total_amount for o in paid_today), 2)
    average = round(total_sales / len(paid_today), 2) if paid_today else 0.0

    by_status = {status.value: 0 for status in OrderStatus}
    for order in all_orders:
        by_status[order.status.value] += 1

    # Keyed by menu item id; the name is the one seen first (newest order)
    counts: Counter = Counter()
    names: dict[str, str] = {}
    for order in all_orders:
        for line in order.items:
            counts[line["id"]] += line.get("quantity", 0)
            names.setdefault(line["id"], line.get("name", ""))

    popular = [
        PopularItem(name=names[item_id], count=count)
        for item_id, count in counts.most_common(POPULAR_ITEMS_LIMIT)
    ]

    logger.debug(f"Dashboard: {len(today)} orders today, sales {total_sales}")

    return DashboardResponse(
        total_sales=total_sales,
        total_orders=len(today),
        average_order_value=average,
        orders_by_status=by_status,
        popular_items=popular,
        recent_orders=[
            OrderResponse.model_validate(o) for o in all_orders[:RECENT_ORDERS_LIMIT]
        ],
    )
