"""
Приём заказов.

Одна процедура create_order обслуживает оба транспорта (HTTP и сокет);
различия задаются OriginContext. Рассылка realtime-событий здесь не
делается: её выполняет вызывающая сторона по результату.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qr_dining.crud.order import get_active_qr, get_active_subscription, get_items_total, get_order_by_id
from qr_dining.db.base import new_id
from qr_dining.errors import BadRequestError, ForbiddenError, NotFoundError
from qr_dining.models import (
    Category,
    Menu,
    MenuItem,
    Notification,
    NotificationTypeEnum,
    Order,
    OrderItem,
    OrderStatusEnum,
    OrderTypeEnum,
    Restaurant,
    TERMINAL_STATUSES,
)
from qr_dining.schemas.order import CustomItemIn, OrderCreate, OrderItemIn
from qr_dining.services.pricing import compose_notes, money, price_line

logger = logging.getLogger(__name__)

# стол для быстрых заказов кассира: без QR и без уведомления
QUICK_TABLE = "QUICK"


@dataclass
class OriginContext:
    transport: str  # "http" | "socket"
    customer_ip: Optional[str] = None
    socket_id: Optional[str] = None

    @property
    def is_socket(self) -> bool:
        return self.transport == "socket"


@dataclass
class IngestionResult:
    order: Order
    notification: Optional[Notification] = None
    is_quick: bool = False

    @property
    def updated_by(self) -> str:
        return "restaurant" if self.is_quick else "customer"


async def _get_open_restaurant(db: AsyncSession, restaurant_id: str) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if not restaurant or not restaurant.is_active:
        raise NotFoundError("Restaurant not found or inactive", "المطعم غير موجود أو غير نشط")
    if await get_active_subscription(db, restaurant_id) is None:
        raise ForbiddenError(
            "Restaurant subscription is not active",
            "اشتراك المطعم غير نشط",
        )
    return restaurant


async def load_orderable_items(
    db: AsyncSession, restaurant_id: str, menu_item_ids: Iterable[str]
) -> Dict[str, MenuItem]:
    """
    Блюда, доступные для заказа: is_available и из активного меню ресторана.
    Если хотя бы одно не найдено, заказ отклоняется целиком.
    """
    ids = set(menu_item_ids)
    stmt = (
        select(MenuItem)
        .join(MenuItem.category)
        .join(Category.menu)
        .where(
            MenuItem.id.in_(ids),
            MenuItem.is_available.is_(True),
            Menu.restaurant_id == restaurant_id,
            Menu.is_active.is_(True),
        )
    )
    result = await db.execute(stmt)
    found = {item.id: item for item in result.scalars().all()}
    missing = ids - set(found)
    if missing:
        logger.info("Rejecting order for restaurant %s: unavailable items %s", restaurant_id, sorted(missing))
        raise BadRequestError(
            "Some menu items are not available",
            "بعض الأصناف غير متوفرة",
        )
    return found


def _build_items(order_id: str, lines: List[OrderItemIn], menu_items: Dict[str, MenuItem]) -> List[OrderItem]:
    items = []
    for line in lines:
        menu_item = menu_items[line.menu_item_id]
        priced = price_line(menu_item, line.quantity, line.extras)
        items.append(
            OrderItem(
                id=new_id(),
                order_id=order_id,
                menu_item_id=menu_item.id,
                quantity=line.quantity,
                price=priced.unit_price,
                discount=priced.discount,
                notes=compose_notes(line.notes, priced.extras_names),
                extras=line.extras or None,
            )
        )
    return items


async def create_order(db: AsyncSession, payload: OrderCreate, origin: OriginContext) -> IngestionResult:
    """
    Создаёт заказ с позициями и уведомлением в одной транзакции.
    """
    restaurant = await _get_open_restaurant(db, payload.restaurant_id)

    table_number = payload.table_number if payload.order_type == OrderTypeEnum.DINE_IN else None
    # быстрый заказ только от кассы по HTTP; сокет-клиент всегда за реальным столом
    is_quick = table_number == QUICK_TABLE and not origin.is_socket
    qr_code_id = None

    if table_number and not is_quick:
        qr = await get_active_qr(db, restaurant.id, table_number)
        if qr is None:
            raise NotFoundError("Invalid table number", "رقم الطاولة غير صالح")
        if origin.is_socket and not qr.is_occupied:
            raise ForbiddenError("Table is not occupied", "الطاولة غير مشغولة")
        qr_code_id = qr.id

    menu_items = await load_orderable_items(db, restaurant.id, (line.menu_item_id for line in payload.items))

    order_id = new_id()
    items = _build_items(order_id, payload.items, menu_items)
    order = Order(
        id=order_id,
        restaurant_id=restaurant.id,
        order_type=payload.order_type,
        table_number=table_number,
        qr_code_id=qr_code_id,
        status=OrderStatusEnum.PENDING,
        total_price=money(sum((item.price * item.quantity for item in items), Decimal("0"))),
        currency=restaurant.currency,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_address=payload.customer_address,
        customer_ip=origin.customer_ip,
        notes=payload.notes,
    )
    db.add(order)
    db.add_all(items)
    await db.flush()

    notification = None
    if not is_quick:
        if payload.order_type == OrderTypeEnum.DINE_IN:
            body = f"New order from table {table_number}"
        else:
            body = f"New delivery order from {payload.customer_name}"
        notification = Notification(
            id=new_id(),
            restaurant_id=restaurant.id,
            order_id=order_id,
            type=NotificationTypeEnum.NEW_ORDER,
            title="New order",
            body=body,
        )
        db.add(notification)

    await db.commit()
    logger.info(
        "Order %s created for restaurant %s via %s (total %s)",
        order_id, restaurant.id, origin.transport, order.total_price,
    )

    order = await get_order_by_id(db, order_id)
    return IngestionResult(order=order, notification=notification, is_quick=is_quick)


async def _lock_order(db: AsyncSession, order_id: str, restaurant_id: Optional[str] = None) -> Optional[Order]:
    stmt = select(Order).where(Order.id == order_id).with_for_update()
    if restaurant_id:
        stmt = stmt.where(Order.restaurant_id == restaurant_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def add_items(db: AsyncSession, order_id: str, lines: List[OrderItemIn]) -> Order:
    """
    Дозаказ клиента. Готовый или закрытый заказ возвращается в PREPARING.
    Сумма пересчитывается по строкам в той же транзакции.
    """
    order = await _lock_order(db, order_id)
    if order is None:
        raise NotFoundError("Order not found", "الطلب غير موجود")
    if order.status == OrderStatusEnum.CANCELLED:
        raise BadRequestError("Cannot add items to a cancelled order", "لا يمكن إضافة أصناف إلى طلب ملغى")

    menu_items = await load_orderable_items(db, order.restaurant_id, (line.menu_item_id for line in lines))
    db.add_all(_build_items(order.id, lines, menu_items))
    await db.flush()

    order.total_price = money(await get_items_total(db, order.id))
    if order.status in (OrderStatusEnum.READY, OrderStatusEnum.COMPLETED):
        order.status = OrderStatusEnum.PREPARING
    await db.commit()
    logger.info("Added %d item(s) to order %s", len(lines), order_id)

    return await get_order_by_id(db, order_id)


async def add_custom_item(db: AsyncSession, order_id: str, restaurant_id: str, item: CustomItemIn) -> Order:
    """
    Позиция вне меню, добавленная кассиром. На кухонную доску не попадает
    и не блокирует автоматический перевод заказа в READY.
    """
    order = await _lock_order(db, order_id, restaurant_id)
    if order is None:
        raise NotFoundError("Order not found", "الطلب غير موجود")
    if order.status in TERMINAL_STATUSES:
        raise BadRequestError(
            "Cannot add items to a completed or cancelled order",
            "لا يمكن إضافة أصناف إلى طلب مكتمل أو ملغى",
        )

    db.add(
        OrderItem(
            id=new_id(),
            order_id=order.id,
            menu_item_id=None,
            quantity=item.quantity,
            price=money(item.price),
            notes=item.notes,
            is_custom_item=True,
            custom_item_name=item.name,
            custom_item_name_ar=item.name,
        )
    )
    await db.flush()

    order.total_price = money(await get_items_total(db, order.id))
    await db.commit()
    logger.info("Custom item %r added to order %s", item.name, order_id)

    return await get_order_by_id(db, order_id)
