from typing import Any, Dict, List, Optional

from qr_dining.schemas.base import CamelModel


class OrderUpdateEvent(CamelModel):
    order: Dict[str, Any]
    updated_by: str = "system"
    timestamp: Optional[str] = None
    restaurant_id: str
    qr_code_id: Optional[str] = None
    skip_restaurant_room: bool = False


class KdsUpdateEvent(CamelModel):
    # None: сигнал кухне перечитать доску целиком
    order_item: Optional[Dict[str, Any]] = None
    restaurant_id: str
    timestamp: Optional[str] = None
    source: str = "kitchen"
    order_id: Optional[str] = None


class NotificationEvent(CamelModel):
    notification: Dict[str, Any]
    restaurant_ids: List[str]
