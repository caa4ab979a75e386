"""
Клиент realtime-релея. API-процесс не держит сокетов: он отправляет
события на HTTP-вход релея, а тот раскладывает их по комнатам.
Доставка best-effort: ошибка релея логируется и не ломает запрос.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

import httpx

from qr_dining.config import settings
from qr_dining.models import Notification, Order, OrderItem, TERMINAL_STATUSES
from qr_dining.schemas.kitchen import KdsItem
from qr_dining.schemas.order import OrderRead
from qr_dining.services.ingestion import IngestionResult
from qr_dining.services.kitchen import ItemStatusResult

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def order_payload(order: Order) -> dict:
    return OrderRead.model_validate(order).to_event()


class RelayNotifier:
    def __init__(
        self,
        base_url: str,
        secret: str = "",
        timeout: float = 3.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self.timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict) -> bool:
        headers = {"X-Internal-Secret": self.secret} if self.secret else {}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(path, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Relay call %s failed: %s", path, exc)
            return False
        return True

    # --- низкоуровневые события ---

    async def order_update(
        self,
        order: Order,
        updated_by: str,
        skip_restaurant_room: bool = False,
    ) -> bool:
        return await self._post(
            "/api/emit-order-update",
            {
                "order": order_payload(order),
                "updatedBy": updated_by,
                "timestamp": utc_timestamp(),
                "restaurantId": order.restaurant_id,
                "qrCodeId": order.qr_code_id,
                "skipRestaurantRoom": skip_restaurant_room,
            },
        )

    async def kds_update(
        self,
        restaurant_id: str,
        order_item: Optional[dict],
        source: str,
        order_id: Optional[str] = None,
    ) -> bool:
        return await self._post(
            "/api/emit-kds-update",
            {
                "orderItem": order_item,
                "restaurantId": restaurant_id,
                "timestamp": utc_timestamp(),
                "source": source,
                "orderId": order_id,
            },
        )

    async def notification(self, notification: dict, restaurant_ids: Iterable[str]) -> bool:
        return await self._post(
            "/api/emit-notification",
            {"notification": notification, "restaurantIds": list(restaurant_ids)},
        )

    # --- сценарии API ---

    async def order_created(self, result: IngestionResult):
        order = result.order
        await self.order_update(order, result.updated_by)
        await self.kds_update(
            order.restaurant_id,
            {"id": "new-order", "order": order_payload(order)},
            source=result.updated_by,
            order_id=order.id,
        )
        if result.notification is not None:
            await self.notification(notification_payload(result.notification), [order.restaurant_id])

    async def items_added(self, order: Order, source: str):
        await self.order_update(order, source)
        await self.kds_update(
            order.restaurant_id,
            {"id": "new-items", "order": order_payload(order)},
            source=source,
            order_id=order.id,
        )

    async def status_changed(self, order: Order, updated_by: str = "restaurant"):
        await self.order_update(order, updated_by)
        if order.status in TERMINAL_STATUSES:
            # кухня убирает заказ с доски
            await self.kds_update(order.restaurant_id, None, source="kitchen", order_id=order.id)

    async def kitchen_item_changed(self, result: ItemStatusResult):
        order = result.order
        if result.promoted:
            if order.qr_code_id:
                # клиенту стола; кассир не получает звук "нового" события
                await self.order_update(order, "kitchen", skip_restaurant_room=True)
            await self.kds_update(order.restaurant_id, None, source="kitchen", order_id=order.id)
        await self.kds_update(
            order.restaurant_id,
            kds_item_payload(result.item),
            source="kitchen",
            order_id=order.id,
        )


def notification_payload(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "type": notification.type.value,
        "title": notification.title,
        "body": notification.body,
        "orderId": notification.order_id,
        "isRead": notification.is_read,
        "createdAt": notification.created_at.isoformat() if notification.created_at else None,
    }


def kds_item_payload(item: OrderItem) -> dict:
    if item.menu_item is None:
        return {
            "id": item.id,
            "orderId": item.order_id,
            "kitchenItemStatus": item.kitchen_item_status.value,
        }
    return KdsItem.model_validate(item).model_dump(mode="json", by_alias=True)


relay_notifier = RelayNotifier(settings.RELAY_URL, settings.RELAY_INTERNAL_SECRET, settings.RELAY_TIMEOUT)
