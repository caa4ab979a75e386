from collections import Counter
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from qr_dining.models import (
    Order,
    OrderItem,
    OrderStatusEnum,
    QRCode,
    ROOT_TABLE,
    Subscription,
    SubscriptionStatusEnum,
    TERMINAL_STATUSES,
)


def _order_with_items():
    return select(Order).options(selectinload(Order.items).selectinload(OrderItem.menu_item))


async def get_order_by_id(
    db: AsyncSession, order_id: str, restaurant_id: Optional[str] = None
) -> Optional[Order]:
    """
    Возвращает заказ по ID с подгруженными items и menu_item.
    populate_existing перечитывает позиции, добавленные в этой же сессии.
    Предотвращает MissingGreenlet при сериализации.
    """
    stmt = _order_with_items().where(Order.id == order_id).execution_options(populate_existing=True)
    if restaurant_id:
        stmt = stmt.where(Order.restaurant_id == restaurant_id)
    result = await db.execute(stmt)
    return result.scalars().unique().first()


async def get_orders(
    db: AsyncSession,
    restaurant_id: str,
    status: Optional[str] = None,
    table_number: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Order], int]:
    """
    Список заказов ресторана с фильтрами и пагинацией.
    Сортировка по created_at (новые первыми). Возвращает (заказы, всего).
    """
    conditions = [Order.restaurant_id == restaurant_id]
    if status:
        conditions.append(Order.status == status)
    if table_number:
        conditions.append(Order.table_number == table_number)
    if date_from:
        conditions.append(Order.created_at >= date_from)
    if date_to:
        conditions.append(Order.created_at <= date_to)

    total = await db.scalar(select(func.count(Order.id)).where(*conditions))

    stmt = (
        _order_with_items()
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    result = await db.execute(stmt)
    return result.scalars().unique().all(), total or 0


async def get_incomplete_order(db: AsyncSession, restaurant_id: str, table_number: str) -> Optional[Order]:
    """Последний незакрытый заказ стола (клиент продолжает его, а не создаёт новый)."""
    stmt = (
        _order_with_items()
        .where(
            Order.restaurant_id == restaurant_id,
            Order.table_number == table_number,
            Order.status.notin_(list(TERMINAL_STATUSES)),
        )
        .order_by(Order.created_at.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().unique().first()


async def get_table_orders(db: AsyncSession, restaurant_id: str, table_number: str) -> List[Order]:
    stmt = (
        _order_with_items()
        .where(
            Order.restaurant_id == restaurant_id,
            Order.table_number == table_number,
            Order.status != OrderStatusEnum.CANCELLED,
        )
        .order_by(Order.created_at.desc())
    )
    result = await db.execute(stmt)
    return result.scalars().unique().all()


async def get_active_qr(db: AsyncSession, restaurant_id: str, table_number: str) -> Optional[QRCode]:
    """Активный QR стола. QR всего ресторана (ROOT) столом не считается."""
    if table_number == ROOT_TABLE:
        return None
    stmt = select(QRCode).where(
        QRCode.restaurant_id == restaurant_id,
        QRCode.table_number == table_number,
        QRCode.is_active.is_(True),
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_active_subscription(db: AsyncSession, restaurant_id: str) -> Optional[Subscription]:
    """Первая активная подписка ресторана вместе с тарифом."""
    stmt = (
        select(Subscription)
        .options(selectinload(Subscription.plan))
        .where(
            Subscription.restaurant_id == restaurant_id,
            Subscription.status == SubscriptionStatusEnum.ACTIVE,
        )
        .order_by(Subscription.created_at)
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_items_total(db: AsyncSession, order_id: str) -> Decimal:
    """Сумма заказа по строкам order_items (price * quantity)."""
    result = await db.execute(
        select(OrderItem.price, OrderItem.quantity).where(OrderItem.order_id == order_id)
    )
    return sum((Decimal(price) * quantity for price, quantity in result.all()), Decimal("0"))


async def get_orders_overview(db: AsyncSession, restaurant_id: str, period_days: int = 30) -> dict:
    """
    Сводка по заказам ресторана за последние period_days дней:
    - количество заказов по статусам
    - выручка и средний чек по завершённым (COMPLETED)
    - заказы за сегодня по часам
    """
    now = datetime.now(timezone.utc)
    date_from = now - timedelta(days=period_days)

    rows = await db.execute(
        select(Order.status, func.count(Order.id))
        .where(Order.restaurant_id == restaurant_id, Order.created_at >= date_from)
        .group_by(Order.status)
    )
    order_stats = {}
    for status, count in rows.all():
        order_stats[getattr(status, "value", status)] = count

    revenue_row = (
        await db.execute(
            select(func.count(Order.id), func.sum(Order.total_price)).where(
                Order.restaurant_id == restaurant_id,
                Order.status == OrderStatusEnum.COMPLETED,
                Order.created_at >= date_from,
            )
        )
    ).first()
    completed = revenue_row[0] or 0
    revenue = Decimal(revenue_row[1] or 0)
    average_check = revenue / completed if completed > 0 else Decimal(0)

    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    created = await db.execute(
        select(Order.created_at).where(
            Order.restaurant_id == restaurant_id,
            Order.created_at >= today,
            Order.created_at < today + timedelta(days=1),
        )
    )
    by_hour = Counter(ts.hour for ts in created.scalars().all())

    return {
        "orderStats": order_stats,
        "totalOrders": sum(order_stats.values()),
        "revenue": float(round(revenue, 2)),
        "averageOrderValue": float(round(average_check, 2)),
        "ordersByHour": [{"hour": hour, "count": by_hour[hour]} for hour in sorted(by_hour)],
    }
