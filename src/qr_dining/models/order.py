import enum
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Text, Enum as SAEnum
from sqlalchemy.orm import relationship
from ..db.base import Base, new_id
from ._mixins import utcnow


class OrderTypeEnum(str, enum.Enum):
    DINE_IN = "DINE_IN"
    DELIVERY = "DELIVERY"


class OrderStatusEnum(str, enum.Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = {OrderStatusEnum.COMPLETED, OrderStatusEnum.CANCELLED}


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    order_type = Column(SAEnum(OrderTypeEnum, name="order_type"), nullable=False, default=OrderTypeEnum.DINE_IN)
    table_number = Column(String(10), nullable=True)
    qr_code_id = Column(String(36), ForeignKey("qr_codes.id", ondelete="SET NULL"), nullable=True)
    status = Column(SAEnum(OrderStatusEnum, name="order_status"), nullable=False, default=OrderStatusEnum.PENDING)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    customer_name = Column(String(50), nullable=True)
    customer_phone = Column(String(15), nullable=True)
    customer_address = Column(String(200), nullable=True)
    customer_ip = Column(String(45), nullable=True)
    notes = Column(Text, nullable=True)
    cashier_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # связи
    restaurant = relationship("Restaurant")
    qr_code = relationship("QRCode", back_populates="orders")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.created_at"
    )
