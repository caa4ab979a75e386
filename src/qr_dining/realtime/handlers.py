"""
Обработчики событий Socket.IO (клиент -> релей).

Каждый обработчик открывает свою сессию БД. Ошибки не рвут соединение:
клиент получает событие error / order_error / waiter_request_error.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from qr_dining.crud.order import get_active_qr
from qr_dining.db.base import new_id
from qr_dining.errors import AppError, BadRequestError, ForbiddenError, NotFoundError
from qr_dining.models import OrderStatusEnum, OrderTypeEnum, QRCode, Restaurant, RoleEnum, User
from qr_dining.realtime.relay import BroadcastRelay
from qr_dining.realtime.rooms import ADMIN_ALL, admin_room, restaurant_room, table_room
from qr_dining.schemas.order import OrderCreate, OrderRead
from qr_dining.services import ingestion
from qr_dining.services.status import update_order_status

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_message(exc: Exception) -> str:
    if isinstance(exc, AppError):
        return exc.message
    if isinstance(exc, ValidationError):
        return "; ".join(err["msg"] for err in exc.errors())
    return str(exc)


class SocketHandlers:
    EVENTS = (
        "connect",
        "disconnect",
        "join_restaurant",
        "join_table",
        "join_admin",
        "create_order",
        "update_order_status",
        "request_waiter",
    )

    def __init__(self, relay: BroadcastRelay, session_factory):
        self.relay = relay
        self.sio = relay.sio
        self.session_factory = session_factory

    def register(self, sio):
        for event in self.EVENTS:
            sio.on(event, getattr(self, event))

    async def _reply(self, sid: str, event: str, data: dict):
        await self.sio.emit(event, data, to=sid)

    async def connect(self, sid, environ=None, auth=None):
        logger.info("Socket connected: %s", sid)

    async def disconnect(self, sid, *args):
        logger.info("Socket disconnected: %s", sid)

    # --- комнаты ---

    async def join_restaurant(self, sid, data):
        restaurant_id = (data or {}).get("restaurantId")
        try:
            async with self.session_factory() as db:
                restaurant = await db.get(Restaurant, restaurant_id) if restaurant_id else None
        except SQLAlchemyError:
            logger.exception("join_restaurant failed for %s", sid)
            await self._reply(sid, "error", {"message": "Failed to join restaurant room"})
            return
        if restaurant is None:
            await self._reply(sid, "error", {"message": "Restaurant not found"})
            return
        await self.sio.enter_room(sid, restaurant_room(restaurant.id))
        await self._reply(sid, "joined_restaurant", {"restaurantId": restaurant.id})

    async def join_table(self, sid, data):
        qr_code_id = (data or {}).get("qrCodeId")
        try:
            async with self.session_factory() as db:
                qr = await db.get(QRCode, qr_code_id) if qr_code_id else None
        except SQLAlchemyError:
            logger.exception("join_table failed for %s", sid)
            await self._reply(sid, "error", {"message": "Failed to join table room"})
            return
        if qr is None or not qr.is_active:
            await self._reply(sid, "error", {"message": "Invalid QR code"})
            return
        await self.sio.enter_room(sid, table_room(qr.id))
        await self._reply(
            sid, "joined_table", {"qrCodeId": qr.id, "tableNumber": qr.table_number}
        )

    async def join_admin(self, sid, data):
        admin_id = (data or {}).get("adminId")
        try:
            async with self.session_factory() as db:
                user = await db.get(User, admin_id) if admin_id else None
        except SQLAlchemyError:
            logger.exception("join_admin failed for %s", sid)
            await self._reply(sid, "error", {"message": "Failed to join admin room"})
            return
        if user is None or user.role != RoleEnum.ADMIN or not user.is_active:
            await self._reply(sid, "error", {"message": "Admin not found"})
            return
        await self.sio.enter_room(sid, admin_room(user.id))
        await self.sio.enter_room(sid, ADMIN_ALL)
        await self._reply(sid, "joined_admin", {"adminId": user.id})

    # --- заказы ---

    async def create_order(self, sid, data):
        try:
            payload = OrderCreate.model_validate(data or {})
            async with self.session_factory() as db:
                result = await ingestion.create_order(
                    db, payload, ingestion.OriginContext(transport="socket", socket_id=sid)
                )
        except (AppError, ValidationError) as exc:
            logger.info("Socket order rejected for %s: %s", sid, _error_message(exc))
            await self._reply(sid, "order_error", {"message": _error_message(exc)})
            return

        order = OrderRead.model_validate(result.order).to_event()
        room = restaurant_room(result.order.restaurant_id)
        await self._reply(sid, "order_created", {"order": order})
        await self.relay.emit("new_order", {"order": order}, room)
        await self.relay.emit("new_order", {"order": order}, ADMIN_ALL)
        await self.relay.emit(
            "kds_update",
            {
                "orderItem": {"id": "new-order", "order": order},
                "restaurantId": result.order.restaurant_id,
                "timestamp": _now(),
                "source": "customer",
                "orderId": result.order.id,
            },
            room,
        )

    async def update_order_status(self, sid, data):
        data = data or {}
        try:
            try:
                status = OrderStatusEnum(data.get("status"))
            except ValueError:
                raise BadRequestError("Invalid order status")
            async with self.session_factory() as db:
                order = await update_order_status(db, data.get("orderId") or "", status)
        except AppError as exc:
            await self._reply(sid, "error", {"message": exc.message})
            return

        payload = {
            "order": OrderRead.model_validate(order).to_event(),
            "updatedBy": data.get("updatedBy") or "restaurant",
            "timestamp": _now(),
        }
        room = restaurant_room(order.restaurant_id)
        for event in ("order_updated", "order_update", "order_status_update"):
            await self.relay.emit(event, payload, room)
        if order.qr_code_id:
            await self.relay.emit("order_status_update", payload, table_room(order.qr_code_id))

    # --- вызов официанта ---

    async def request_waiter(self, sid, data):
        data = data or {}
        restaurant_id = data.get("restaurantId")
        order_type = data.get("orderType") or OrderTypeEnum.DINE_IN.value
        table_number: Optional[str] = (data.get("tableNumber") or "").strip() or None

        try:
            async with self.session_factory() as db:
                restaurant = await db.get(Restaurant, restaurant_id) if restaurant_id else None
                if restaurant is None:
                    raise NotFoundError("Restaurant not found")
                if order_type == OrderTypeEnum.DINE_IN.value:
                    if not table_number:
                        raise BadRequestError("Table number is required")
                    qr = await get_active_qr(db, restaurant.id, table_number)
                    if qr is None:
                        raise NotFoundError("Invalid table number or QR code")
                    if not qr.is_occupied:
                        raise ForbiddenError(
                            "Table is not occupied. Please ask the cashier to start a session for this table."
                        )
        except AppError as exc:
            await self._reply(sid, "waiter_request_error", {"message": exc.message})
            return

        dine_in = order_type == OrderTypeEnum.DINE_IN.value
        # уведомление не сохраняется в БД
        notification = {
            "id": f"waiter-{new_id()}",
            "restaurantId": restaurant.id,
            "type": "WAITER_REQUEST",
            "title": f"طلب نادل من الطاولة {table_number}" if dine_in else "طلب نادل من طلب التوصيل",
            "body": f"الزبون في الطاولة {table_number} يطلب النادل" if dine_in else "زبون التوصيل يطلب النادل",
            "isRead": False,
            "createdAt": _now(),
        }
        await self.relay.emit(
            "waiter_request",
            {
                "notification": notification,
                "tableNumber": table_number,
                "orderType": order_type,
                "message": (
                    f"Waiter requested from table {table_number}" if dine_in else "Waiter requested from delivery order"
                ),
            },
            restaurant_room(restaurant.id),
        )
        await self._reply(sid, "waiter_request_sent", {"message": "Waiter request sent successfully"})
        logger.info("Waiter request from %s to restaurant %s", table_number or "delivery", restaurant.id)
