from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from ..db.base import Base, new_id
from ._mixins import utcnow

# QR всего ресторана (не привязан к столу)
ROOT_TABLE = "ROOT"


class QRCode(Base):
    __tablename__ = "qr_codes"
    __table_args__ = (UniqueConstraint("restaurant_id", "table_number", name="uq_qr_restaurant_table"),)

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    table_number = Column(String(10), nullable=False)
    qr_code = Column(String(512), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_occupied = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    restaurant = relationship("Restaurant", back_populates="qr_codes")
    orders = relationship("Order", back_populates="qr_code")
