from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from qr_dining.api.deps import (
    CurrentUser,
    get_client_ip,
    get_notifier,
    require_active_restaurant,
    require_restaurant,
)
from qr_dining.crud.order import (
    get_active_qr,
    get_incomplete_order,
    get_order_by_id,
    get_orders,
    get_orders_overview,
    get_table_orders,
)
from qr_dining.db.session import get_async_session
from qr_dining.errors import NotFoundError
from qr_dining.models import OrderStatusEnum
from qr_dining.schemas.base import ok
from qr_dining.schemas.order import AddItemsIn, CustomItemIn, OrderCreate, OrderRead, Pagination, StatusUpdateIn
from qr_dining.services import ingestion
from qr_dining.services.notifier import RelayNotifier
from qr_dining.services.status import update_order_status


router = APIRouter(prefix="/api/order", tags=["orders"])


# --- публичные ручки (клиент по QR) ---

@router.post("/create", status_code=201)
async def create_order_endpoint(
    order_in: OrderCreate,
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    notifier: RelayNotifier = Depends(get_notifier),
):
    """
    Создаёт заказ клиента (стол или доставка).
    После коммита уведомляет ресторан и кухню через релей.
    """
    origin = ingestion.OriginContext(transport="http", customer_ip=get_client_ip(request))
    result = await ingestion.create_order(db, order_in, origin)
    await notifier.order_created(result)
    return ok({"order": OrderRead.model_validate(result.order)}, message="Order created successfully")


@router.get("/track/{order_id}")
async def track_order(
    order_id: str = Path(..., description="ID заказа"),
    db: AsyncSession = Depends(get_async_session),
):
    order = await get_order_by_id(db, order_id)
    if not order:
        raise NotFoundError("Order not found", "الطلب غير موجود")
    return ok({"order": OrderRead.model_validate(order)})


@router.get("/incomplete/{restaurant_id}")
async def incomplete_order(
    restaurant_id: str,
    table_number: Optional[str] = Query(None, alias="tableNumber", description="Номер стола"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Незакрытый заказ стола. Для доставки (без стола) всегда 404,
    чтобы клиент мог оформить новый заказ.
    """
    order = None
    if table_number:
        order = await get_incomplete_order(db, restaurant_id, table_number.strip())
    if not order:
        raise NotFoundError("No incomplete order found")
    return ok({"order": OrderRead.model_validate(order)})


@router.get("/table/{restaurant_id}/{table_number}")
async def table_orders(
    restaurant_id: str,
    table_number: str,
    db: AsyncSession = Depends(get_async_session),
):
    """Все неотменённые заказы активного стола."""
    if await get_active_qr(db, restaurant_id, table_number) is None:
        raise NotFoundError("Invalid table number", "رقم الطاولة غير صالح")
    orders = await get_table_orders(db, restaurant_id, table_number)
    return ok({"orders": [OrderRead.model_validate(o) for o in orders]})


@router.put("/{order_id}/add-items")
async def add_items_endpoint(
    order_id: str,
    body: AddItemsIn,
    db: AsyncSession = Depends(get_async_session),
    notifier: RelayNotifier = Depends(get_notifier),
):
    """Дозаказ клиента к существующему заказу."""
    order = await ingestion.add_items(db, order_id, body.items)
    await notifier.items_added(order, source="customer")
    return ok({"order": OrderRead.model_validate(order)}, message="Items added successfully")


# --- ручки кассира ---

@router.get("/")
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100, description="Количество записей на страницу"),
    status: Optional[OrderStatusEnum] = Query(None, description="Фильтр по статусу"),
    table_number: Optional[str] = Query(None, alias="tableNumber"),
    start_date: Optional[datetime] = Query(None, alias="startDate", description="Начальная дата"),
    end_date: Optional[datetime] = Query(None, alias="endDate", description="Конечная дата"),
    current: CurrentUser = Depends(require_active_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Возвращает список заказов ресторана.
    Поддерживает фильтрацию по статусу, столу и диапазону дат, пагинацию.
    """
    orders, total = await get_orders(
        db,
        current.restaurant_id,
        status=status,
        table_number=table_number,
        date_from=start_date,
        date_to=end_date,
        page=page,
        limit=limit,
    )
    pagination = Pagination(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)
    return ok({"orders": [OrderRead.model_validate(o) for o in orders], "pagination": pagination})


@router.get("/stats/overview")
async def stats_overview(
    period: int = Query(30, ge=1, le=365, description="Период в днях"),
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Сводка по заказам:
    - количество по статусам
    - выручка и средний чек завершённых заказов
    - заказы за сегодня по часам
    """
    return ok(await get_orders_overview(db, current.restaurant_id, period))


@router.get("/{order_id}")
async def get_order(
    order_id: str = Path(..., description="ID заказа"),
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
):
    order = await get_order_by_id(db, order_id, current.restaurant_id)
    if not order:
        raise NotFoundError("Order not found", "الطلب غير موجود")
    return ok({"order": OrderRead.model_validate(order)})


@router.post("/{order_id}/add-item")
async def add_custom_item_endpoint(
    order_id: str,
    body: CustomItemIn,
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
    notifier: RelayNotifier = Depends(get_notifier),
):
    """Позиция вне меню от кассира (name, quantity, price)."""
    order = await ingestion.add_custom_item(db, order_id, current.restaurant_id, body)
    await notifier.items_added(order, source="restaurant")
    return ok({"order": OrderRead.model_validate(order)}, message="Item added successfully")


@router.put("/{order_id}/status")
async def update_status_endpoint(
    order_id: str,
    body: StatusUpdateIn,
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
    notifier: RelayNotifier = Depends(get_notifier),
):
    order = await update_order_status(
        db, order_id, body.status, restaurant_id=current.restaurant_id, cashier_id=current.id
    )
    await notifier.status_changed(order)
    return ok({"order": OrderRead.model_validate(order)}, message="Order status updated successfully")
