from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, conint, constr, model_validator

from qr_dining.models import KitchenItemStatusEnum, OrderStatusEnum, OrderTypeEnum
from qr_dining.schemas.base import CamelModel, Money

# {"size": ["large"], "sauce": ["bbq", "garlic"]}
ExtrasSelection = Dict[str, List[str]]


class OrderItemIn(CamelModel):
    menu_item_id: str
    quantity: conint(ge=1)
    notes: Optional[constr(max_length=200)] = None
    extras: Optional[ExtrasSelection] = None


class OrderCreate(CamelModel):
    restaurant_id: str
    order_type: OrderTypeEnum = OrderTypeEnum.DINE_IN
    table_number: Optional[constr(strip_whitespace=True, max_length=10)] = None
    items: List[OrderItemIn] = Field(..., min_length=1)
    customer_name: Optional[constr(strip_whitespace=True, min_length=2, max_length=50)] = None
    customer_phone: Optional[constr(strip_whitespace=True, min_length=10, max_length=15)] = None
    customer_address: Optional[constr(strip_whitespace=True, min_length=10, max_length=200)] = None
    notes: Optional[constr(max_length=500)] = None

    @model_validator(mode="after")
    def check_order_type_fields(self):
        if self.order_type == OrderTypeEnum.DINE_IN:
            if not self.table_number:
                raise ValueError("tableNumber is required for dine-in orders")
        else:
            missing = [
                alias
                for alias, value in (
                    ("customerName", self.customer_name),
                    ("customerPhone", self.customer_phone),
                    ("customerAddress", self.customer_address),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"{', '.join(missing)} required for delivery orders")
        return self


class AddItemsIn(CamelModel):
    items: List[OrderItemIn] = Field(..., min_length=1)


class CustomItemIn(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=128)
    quantity: conint(ge=1)
    price: Money = Field(..., ge=0)
    notes: Optional[constr(max_length=200)] = None


class StatusUpdateIn(CamelModel):
    status: OrderStatusEnum


class MenuItemBrief(CamelModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    price: Money
    kitchen_section_id: Optional[str] = None


class OrderItemRead(CamelModel):
    id: str
    menu_item_id: Optional[str] = None
    quantity: int
    price: Money
    discount: Optional[int] = None
    notes: Optional[str] = None
    extras: Optional[ExtrasSelection] = None
    is_custom_item: bool = False
    custom_item_name: Optional[str] = None
    custom_item_name_ar: Optional[str] = None
    kitchen_item_status: KitchenItemStatusEnum
    created_at: datetime
    menu_item: Optional[MenuItemBrief] = None


class OrderRead(CamelModel):
    id: str
    restaurant_id: str
    order_type: OrderTypeEnum
    table_number: Optional[str] = None
    qr_code_id: Optional[str] = None
    status: OrderStatusEnum
    total_price: Money
    currency: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    cashier_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = []

    def to_event(self) -> dict:
        """Представление заказа для realtime-событий."""
        return self.model_dump(mode="json", by_alias=True)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
