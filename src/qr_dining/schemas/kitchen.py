from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import Field, constr

from qr_dining.models import KitchenItemStatusEnum, OrderStatusEnum, OrderTypeEnum
from qr_dining.schemas.base import CamelModel

GENERAL_SECTION_ID = "GENERAL"


class KitchenSectionCreate(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    name_ar: Optional[constr(max_length=100)] = None
    sort_order: int = 0
    is_active: bool = True


class KitchenSectionUpdate(CamelModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    name_ar: Optional[constr(max_length=100)] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class KitchenSectionRead(CamelModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    sort_order: int
    is_active: bool
    menu_item_count: int = 0
    created_at: datetime


class KdsItemStatusIn(CamelModel):
    # строка, а не enum: неверное значение отдаём двуязычной 400
    status: str


class KdsOrderBrief(CamelModel):
    id: str
    table_number: Optional[str] = None
    order_type: OrderTypeEnum
    status: OrderStatusEnum
    customer_name: Optional[str] = None
    created_at: datetime


class KdsMenuItemBrief(CamelModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    kitchen_section_id: Optional[str] = None


class KdsItem(CamelModel):
    id: str
    order_id: str
    quantity: int
    notes: Optional[str] = None
    extras: Optional[Dict[str, List[str]]] = None
    kitchen_item_status: KitchenItemStatusEnum
    created_at: datetime
    menu_item: KdsMenuItemBrief
    order: KdsOrderBrief


class KitchenSectionView(CamelModel):
    kind: Literal["section"] = "section"
    id: str
    name: str
    name_ar: Optional[str] = None
    sort_order: int
    items: List[KdsItem] = []


class GeneralSectionView(CamelModel):
    """Синтетическая секция для блюд без кухонной секции. В БД не хранится."""

    kind: Literal["general"] = "general"
    id: Literal["GENERAL"] = GENERAL_SECTION_ID
    name: str = "General"
    name_ar: str = "عام"
    sort_order: int = 9999
    items: List[KdsItem] = []


KdsSection = Annotated[Union[KitchenSectionView, GeneralSectionView], Field(discriminator="kind")]


class KdsBoard(CamelModel):
    sections: List[KdsSection]
    total_items: int
