"""
Кухонный экран (KDS): статусы позиций, доска по секциям и сами секции.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from qr_dining.crud.order import get_active_subscription, get_order_by_id
from qr_dining.errors import BadRequestError, ForbiddenError, NotFoundError
from qr_dining.models import (
    KitchenItemStatusEnum,
    KitchenSection,
    MenuItem,
    Order,
    OrderItem,
    OrderStatusEnum,
)
from qr_dining.schemas.kitchen import (
    GeneralSectionView,
    KdsBoard,
    KdsItem,
    KitchenSectionCreate,
    KitchenSectionUpdate,
    KitchenSectionView,
)
from qr_dining.services.status import promote_if_kitchen_complete

logger = logging.getLogger(__name__)

KDS_FEATURES = ("KITCHEN_DISPLAY_SYSTEM", "kitchen_display_system")
KDS_ORDER_STATUSES = (OrderStatusEnum.PENDING, OrderStatusEnum.PREPARING)


@dataclass
class ItemStatusResult:
    item: OrderItem
    order: Order
    promoted: bool


async def ensure_kds_enabled(db: AsyncSession, restaurant_id: str) -> None:
    subscription = await get_active_subscription(db, restaurant_id)
    if subscription is None:
        raise ForbiddenError(
            "No active subscription found. Please subscribe to a plan that supports Kitchen Display System.",
            "لا يوجد اشتراك نشط. يرجى الاشتراك في خطة تدعم لوحة المطبخ",
        )
    features = subscription.plan.features or []
    if not any(feature in features for feature in KDS_FEATURES):
        raise ForbiddenError(
            "Kitchen Display System is not available in your current plan. Please upgrade your plan.",
            "لوحة المطبخ غير متوفرة في خطتك الحالية. يرجى ترقية خطتك",
        )


async def set_item_status(db: AsyncSession, restaurant_id: str, item_id: str, status: str) -> ItemStatusResult:
    """
    Меняет кухонный статус позиции и, если всё готово, переводит заказ
    в READY. Оба изменения фиксируются одним коммитом.
    """
    try:
        new_status = KitchenItemStatusEnum(status)
    except ValueError:
        raise BadRequestError(
            "Invalid status. Must be PENDING, PREPARING, or COMPLETED",
            "حالة غير صالحة. يجب أن تكون PENDING أو PREPARING أو COMPLETED",
        )

    stmt = (
        select(OrderItem)
        .join(OrderItem.order)
        .where(OrderItem.id == item_id, Order.restaurant_id == restaurant_id)
        .options(
            selectinload(OrderItem.menu_item),
            selectinload(OrderItem.order).selectinload(Order.items).selectinload(OrderItem.menu_item),
        )
    )
    item = (await db.execute(stmt)).scalars().first()
    if item is None:
        raise NotFoundError("Order item not found", "عنصر الطلب غير موجود")

    item.kitchen_item_status = new_status
    order = item.order
    promoted = False
    if new_status == KitchenItemStatusEnum.COMPLETED:
        promoted = promote_if_kitchen_complete(order)
    await db.commit()
    logger.info("Kitchen item %s of order %s -> %s", item_id, order.id, new_status.value)
    # для realtime-события нужны позиции вместе с блюдами
    order = await get_order_by_id(db, order.id)

    return ItemStatusResult(item=item, order=order, promoted=promoted)


async def list_kds_items(db: AsyncSession, restaurant_id: str) -> KdsBoard:
    """
    Позиции активных заказов (PENDING/PREPARING), сгруппированные по
    кухонным секциям. Блюда без секции идут в синтетическую GENERAL,
    которая всегда есть и всегда последняя. Позиции кассира не показываются.
    """
    sections_result = await db.execute(
        select(KitchenSection)
        .where(KitchenSection.restaurant_id == restaurant_id, KitchenSection.is_active.is_(True))
        .order_by(KitchenSection.sort_order, KitchenSection.name)
    )
    views = {
        section.id: KitchenSectionView(
            id=section.id, name=section.name, name_ar=section.name_ar, sort_order=section.sort_order
        )
        for section in sections_result.scalars().all()
    }
    general = GeneralSectionView()

    items_result = await db.execute(
        select(OrderItem)
        .join(OrderItem.order)
        .where(
            Order.restaurant_id == restaurant_id,
            Order.status.in_(KDS_ORDER_STATUSES),
            OrderItem.menu_item_id.isnot(None),
        )
        .options(selectinload(OrderItem.menu_item), selectinload(OrderItem.order))
        .order_by(Order.created_at, OrderItem.created_at)
    )
    items = items_result.scalars().all()
    for item in items:
        view = KdsItem.model_validate(item)
        target = views.get(item.menu_item.kitchen_section_id, general)
        target.items.append(view)

    sections = sorted(views.values(), key=lambda s: s.sort_order)
    return KdsBoard(sections=[*sections, general], total_items=len(items))


async def list_sections(db: AsyncSession, restaurant_id: str) -> List[dict]:
    stmt = (
        select(KitchenSection, func.count(MenuItem.id))
        .outerjoin(MenuItem, MenuItem.kitchen_section_id == KitchenSection.id)
        .where(KitchenSection.restaurant_id == restaurant_id)
        .group_by(KitchenSection.id)
        .order_by(KitchenSection.sort_order)
    )
    result = await db.execute(stmt)
    return [
        {"section": section, "menu_item_count": count}
        for section, count in result.all()
    ]


async def get_section(db: AsyncSession, restaurant_id: str, section_id: str) -> Optional[KitchenSection]:
    result = await db.execute(
        select(KitchenSection).where(
            KitchenSection.id == section_id, KitchenSection.restaurant_id == restaurant_id
        )
    )
    return result.scalars().first()


async def create_section(db: AsyncSession, restaurant_id: str, data: KitchenSectionCreate) -> KitchenSection:
    await ensure_kds_enabled(db, restaurant_id)
    section = KitchenSection(restaurant_id=restaurant_id, **data.model_dump())
    db.add(section)
    await db.commit()
    await db.refresh(section)
    return section


async def update_section(
    db: AsyncSession, restaurant_id: str, section_id: str, data: KitchenSectionUpdate
) -> KitchenSection:
    section = await get_section(db, restaurant_id, section_id)
    if section is None:
        raise NotFoundError("Kitchen section not found", "قسم المطبخ غير موجود")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(section, field, value)
    await db.commit()
    await db.refresh(section)
    return section


async def delete_section(db: AsyncSession, restaurant_id: str, section_id: str) -> None:
    section = await get_section(db, restaurant_id, section_id)
    if section is None:
        raise NotFoundError("Kitchen section not found", "قسم المطبخ غير موجود")

    in_use = await db.scalar(select(func.count(MenuItem.id)).where(MenuItem.kitchen_section_id == section_id))
    if in_use:
        raise BadRequestError(
            "Cannot delete section with menu items. Please reassign items first.",
            "لا يمكن حذف القسم لأنه يحتوي على أصناف. يرجى نقل الأصناف أولاً",
        )
    await db.delete(section)
    await db.commit()
