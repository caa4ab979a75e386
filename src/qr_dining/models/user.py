import enum
from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
from ..db.base import Base, new_id
from ._mixins import utcnow


class RoleEnum(str, enum.Enum):
    RESTAURANT = "RESTAURANT"
    CASHIER = "CASHIER"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=True)
    role = Column(Enum(RoleEnum, name="user_role"), nullable=False, default=RoleEnum.RESTAURANT)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # рестораны, которыми владеет пользователь (кассир берёт первый)
    restaurants = relationship("Restaurant", back_populates="owner", order_by="Restaurant.created_at")
