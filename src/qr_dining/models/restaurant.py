import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Enum as SAEnum
from sqlalchemy.orm import relationship
from ..db.base import Base, new_id
from ._mixins import utcnow


class SubscriptionStatusEnum(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # связи
    owner = relationship("User", back_populates="restaurants")
    subscriptions = relationship("Subscription", back_populates="restaurant", order_by="Subscription.created_at")
    qr_codes = relationship("QRCode", back_populates="restaurant")
    kitchen_sections = relationship("KitchenSection", back_populates="restaurant")


class Plan(Base):
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(50), nullable=False)
    features = Column(JSON, nullable=False, default=list)  # ["KITCHEN_DISPLAY_SYSTEM", ...]

    subscriptions = relationship("Subscription", back_populates="plan")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("plans.id"), nullable=False)
    status = Column(
        SAEnum(SubscriptionStatusEnum, name="subscription_status"),
        nullable=False,
        default=SubscriptionStatusEnum.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    restaurant = relationship("Restaurant", back_populates="subscriptions")
    plan = relationship("Plan", back_populates="subscriptions")
