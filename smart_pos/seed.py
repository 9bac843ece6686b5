"""
Sample Data

Fills an empty store with the demo menu, the dining room's tables and a
few orders in different states, so every screen has something to show on
first start.
"""

import logging
import random
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_pos.models import (
    DiningTable,
    KitchenOrder,
    KitchenPriority,
    MenuCategory,
    MenuItem,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TableStatus,
)
from smart_pos.services.orders import CHEF_COUNT

logger = logging.getLogger(__name__)

TABLE_COUNT = 20
PLACEHOLDER_IMAGE = "/placeholder.svg?height=200&width=300"

MENU = [
    # (name, description, price, category, minutes, ingredients)
    ("Es Teh Manis", "Refreshing sweet iced tea made with premium tea leaves",
     5000, MenuCategory.FAST_TRACK, 3, ["Tea", "Sugar", "Ice"]),
    ("Es Jeruk", "Fresh orange juice with ice cubes",
     7000, MenuCategory.FAST_TRACK, 2, ["Orange", "Sugar", "Ice", "Water"]),
    ("Kerupuk", "Traditional Indonesian crackers, crispy and savory",
     3000, MenuCategory.FAST_TRACK, 1, ["Rice flour", "Spices"]),
    ("Nasi Goreng Spesial", "Special fried rice with chicken, egg, and vegetables",
     15000, MenuCategory.MAIN_COURSE, 20, ["Rice", "Chicken", "Egg", "Vegetables", "Spices"]),
    ("Ayam Bakar", "Grilled chicken with special Indonesian spices",
     18000, MenuCategory.MAIN_COURSE, 25, ["Chicken", "Spices", "Sweet soy sauce"]),
    ("Mie Ayam", "Chicken noodle soup with tender chicken pieces",
     12000, MenuCategory.MAIN_COURSE, 15, ["Noodles", "Chicken", "Broth", "Vegetables"]),
    ("Gado-gado", "Indonesian salad with peanut sauce dressing",
     10000, MenuCategory.MAIN_COURSE, 10, ["Vegetables", "Tofu", "Tempeh", "Peanut sauce"]),
    ("Es Krim Vanilla", "Creamy vanilla ice cream served in a cup",
     8000, MenuCategory.DESSERT, 2, ["Milk", "Vanilla", "Sugar"]),
    ("Pudding Coklat", "Rich chocolate pudding with chocolate sauce",
     7000, MenuCategory.DESSERT, 3, ["Chocolate", "Milk", "Sugar", "Gelatin"]),
    ("Es Campur", "Mixed ice dessert with various toppings",
     9000, MenuCategory.DESSERT, 5, ["Ice", "Coconut", "Palm sugar", "Various toppings"]),
]


def table_qr_code(number: int) -> str:
    return f"QR-TABLE-{number:02d}"


def _line(item: MenuItem, quantity: int, notes=None) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "category": item.category.value,
        "estimated_time": item.estimated_time,
        "image": item.image,
        "available": item.available,
        "ingredients": item.ingredients,
        "quantity": quantity,
        "notes": notes,
    }


def _sample_orders(menu: list[MenuItem], now: datetime) -> list[Order]:
    stamp = int(now.timestamp() * 1000)

    def order(suffix, lines, **fields) -> Order:
        return Order(
            id=f"ORD-{stamp}-{suffix}",
            items=lines,
            total_amount=sum(line["price"] * line["quantity"] for line in lines),
            **fields,
        )

    return [
        order(
            "001",
            [_line(menu[0], 2, "Less sugar"), _line(menu[2], 1)],
            table_number=3,
            customer_name="John Doe",
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            order_time=now - timedelta(minutes=5),
            notes="Please serve quickly",
        ),
        order(
            "002",
            [_line(menu[3], 1), _line(menu[7], 2)],
            table_number=7,
            customer_name="Jane Smith",
            status=OrderStatus.CONFIRMED,
            payment_status=PaymentStatus.PAID,
            payment_method=PaymentMethod.QRIS,
            order_time=now - timedelta(minutes=10),
            estimated_ready_time=now + timedelta(minutes=15),
        ),
        order(
            "003",
            [_line(menu[4], 1), _line(menu[1], 1)],
            table_number=12,
            status=OrderStatus.PREPARING,
            payment_status=PaymentStatus.PAID,
            payment_method=PaymentMethod.CASH,
            order_time=now - timedelta(minutes=20),
            estimated_ready_time=now + timedelta(minutes=5),
        ),
    ]


async def seed_store(db: AsyncSession, with_orders: bool = True) -> bool:
    """
    Load the demo data into an empty store.

    Returns:
        bool: False if the store already had menu items
    """
    existing = await db.scalar(select(func.count()).select_from(MenuItem))
    if existing:
        logger.info("Store already has data, skipping seed")
        return False

    menu = [
        MenuItem(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            price=float(price),
            category=category,
            estimated_time=minutes,
            image=PLACEHOLDER_IMAGE,
            available=True,
            ingredients=ingredients,
        )
        for name, description, price, category, minutes, ingredients in MENU
    ]
    db.add_all(menu)

    db.add_all(
        DiningTable(
            id=str(uuid.uuid4()),
            number=number,
            capacity=random.randint(2, 8),
            status=TableStatus.OCCUPIED if random.random() > 0.7 else TableStatus.AVAILABLE,
            qr_code=table_qr_code(number),
        )
        for number in range(1, TABLE_COUNT + 1)
    )

    order_count = 0
    if with_orders:
        now = datetime.now()
        for order in _sample_orders(menu, now):
            db.add(order)
            order_count += 1
            if order.status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING):
                db.add(KitchenOrder(
                    order=order,
                    priority=(
                        KitchenPriority.URGENT if random.random() > 0.7
                        else KitchenPriority.NORMAL
                    ),
                    start_time=(
                        now - timedelta(minutes=10)
                        if order.status == OrderStatus.PREPARING else None
                    ),
                    assigned_chef=f"Chef {random.randint(1, CHEF_COUNT)}",
                ))

    await db.commit()

    logger.info(f"Seeded {len(menu)} menu items, {TABLE_COUNT} tables, {order_count} orders")
    return True
