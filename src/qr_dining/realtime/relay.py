"""
Маршрутизация realtime-событий по комнатам.

Членство в комнатах живёт только в памяти сокет-сервера; после рестарта
клиенты заходят в комнаты заново. Доставка at-most-once.
"""
import logging
from typing import Any, List

from qr_dining.realtime.rooms import restaurant_room, table_room
from qr_dining.schemas.realtime import KdsUpdateEvent, NotificationEvent, OrderUpdateEvent

logger = logging.getLogger(__name__)

ORDER_EVENTS = ("order_update", "order_status_update")


class BroadcastRelay:
    def __init__(self, sio):
        self.sio = sio

    async def emit(self, event: str, data: Any, room: str):
        await self.sio.emit(event, data, to=room)

    async def emit_order_update(self, event: OrderUpdateEvent) -> List[str]:
        """
        order_update + order_status_update в комнату ресторана (если не
        skipRestaurantRoom) и, при наличии qrCodeId, всегда в комнату стола.
        """
        payload = event.model_dump(mode="json", by_alias=True)
        rooms = []
        if not event.skip_restaurant_room:
            rooms.append(restaurant_room(event.restaurant_id))
        if event.qr_code_id:
            rooms.append(table_room(event.qr_code_id))

        for room in rooms:
            for name in ORDER_EVENTS:
                await self.emit(name, payload, room)
        logger.debug("Order %s update by %s -> %s", event.order.get("id"), event.updated_by, rooms)
        return rooms

    async def emit_kds_update(self, event: KdsUpdateEvent) -> List[str]:
        payload = event.model_dump(mode="json", by_alias=True)
        room = restaurant_room(event.restaurant_id)
        await self.emit("kds_update", payload, room)
        emitted = ["kds_update"]
        # новые позиции от клиента кассир видит и в списке заказов
        if event.source == "customer":
            await self.emit("order_update", payload, room)
            emitted.append("order_update")
        return emitted

    async def emit_notification(self, event: NotificationEvent) -> List[str]:
        rooms = [restaurant_room(restaurant_id) for restaurant_id in event.restaurant_ids]
        for room in rooms:
            await self.emit("notification", event.notification, room)
        return rooms
