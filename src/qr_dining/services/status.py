import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from qr_dining.crud.order import get_order_by_id
from qr_dining.errors import NotFoundError
from qr_dining.models import KitchenItemStatusEnum, Order, OrderStatusEnum

logger = logging.getLogger(__name__)

# из этих статусов кухня может перевести заказ в READY
KITCHEN_STAGES = {OrderStatusEnum.PENDING, OrderStatusEnum.PREPARING}


async def update_order_status(
    db: AsyncSession,
    order_id: str,
    status: OrderStatusEnum,
    restaurant_id: Optional[str] = None,
    cashier_id: Optional[str] = None,
) -> Order:
    """
    Ручная смена статуса (кассир или сокет-клиент).
    Допускается любой из шести статусов, таблицы переходов нет.
    """
    order = await get_order_by_id(db, order_id, restaurant_id)
    if order is None:
        raise NotFoundError("Order not found", "الطلب غير موجود")

    previous = order.status
    order.status = status
    if cashier_id:
        order.cashier_id = cashier_id
    await db.commit()
    logger.info("Order %s status %s -> %s", order_id, previous.value, status.value)

    return await get_order_by_id(db, order_id)


def promote_if_kitchen_complete(order: Order) -> bool:
    """
    Переводит заказ в READY, когда все позиции из меню готовы.
    Позиции кассира (без menu_item) не учитываются. Коммит делает вызывающий.
    """
    kitchen_items = [item for item in order.items if item.menu_item_id is not None and not item.is_custom_item]
    if not kitchen_items:
        return False
    if any(item.kitchen_item_status != KitchenItemStatusEnum.COMPLETED for item in kitchen_items):
        return False
    if order.status not in KITCHEN_STAGES:
        return False

    order.status = OrderStatusEnum.READY
    logger.info("All kitchen items done, order %s promoted to READY", order.id)
    return True
