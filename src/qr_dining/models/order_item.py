import enum
from sqlalchemy import Column, String, Integer, Numeric, Boolean, DateTime, ForeignKey, Text, JSON, Enum as SAEnum
from sqlalchemy.orm import relationship
from ..db.base import Base, new_id
from ._mixins import utcnow


class KitchenItemStatusEnum(str, enum.Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    COMPLETED = "COMPLETED"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(12, 2), nullable=False)  # фиксируется на момент заказа (со скидкой и extras)
    discount = Column(Integer, nullable=True)  # скидка блюда на момент заказа
    notes = Column(Text, nullable=True)
    extras = Column(JSON, nullable=True)  # {"size": ["l"]}
    is_custom_item = Column(Boolean, nullable=False, default=False)
    custom_item_name = Column(String(128), nullable=True)
    custom_item_name_ar = Column(String(128), nullable=True)
    kitchen_item_status = Column(
        SAEnum(KitchenItemStatusEnum, name="kitchen_item_status"),
        nullable=False,
        default=KitchenItemStatusEnum.PENDING,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # связи
    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", back_populates="order_items")
