from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qr_dining.api.deps import CurrentUser, get_notifier, require_restaurant
from qr_dining.db.session import get_async_session
from qr_dining.schemas.base import ok
from qr_dining.schemas.kitchen import (
    KdsItemStatusIn,
    KitchenSectionCreate,
    KitchenSectionRead,
    KitchenSectionUpdate,
)
from qr_dining.services import kitchen
from qr_dining.services.notifier import RelayNotifier, kds_item_payload


router = APIRouter(prefix="/api/kitchen", tags=["kitchen"])


@router.get("/kds/items")
async def kds_items(
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Доска кухни: позиции активных заказов по секциям.
    Доступна только тарифам с KITCHEN_DISPLAY_SYSTEM.
    """
    await kitchen.ensure_kds_enabled(db, current.restaurant_id)
    board = await kitchen.list_kds_items(db, current.restaurant_id)
    return ok(board)


@router.put("/kds/items/{item_id}/status")
async def kds_item_status(
    item_id: str,
    body: KdsItemStatusIn,
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
    notifier: RelayNotifier = Depends(get_notifier),
):
    await kitchen.ensure_kds_enabled(db, current.restaurant_id)
    result = await kitchen.set_item_status(db, current.restaurant_id, item_id, body.status)
    await notifier.kitchen_item_changed(result)
    return ok(
        {
            "orderItem": kds_item_payload(result.item),
            "orderStatus": result.order.status.value,
            "orderReady": result.promoted,
        },
        message="Item status updated successfully",
    )


@router.get("/sections")
async def list_sections(
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    rows = await kitchen.list_sections(db, current.restaurant_id)
    sections = []
    for row in rows:
        view = KitchenSectionRead.model_validate(row["section"])
        view.menu_item_count = row["menu_item_count"]
        sections.append(view)
    return ok({"sections": sections})


@router.post("/sections", status_code=201)
async def create_section(
    body: KitchenSectionCreate,
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    section = await kitchen.create_section(db, current.restaurant_id, body)
    return ok({"section": KitchenSectionRead.model_validate(section)}, message="Kitchen section created")


@router.put("/sections/{section_id}")
async def update_section(
    section_id: str,
    body: KitchenSectionUpdate,
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    section = await kitchen.update_section(db, current.restaurant_id, section_id, body)
    return ok({"section": KitchenSectionRead.model_validate(section)}, message="Kitchen section updated")


@router.delete("/sections/{section_id}")
async def delete_section(
    section_id: str,
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    await kitchen.delete_section(db, current.restaurant_id, section_id)
    return ok(message="Kitchen section deleted")
