from sqlalchemy import Column, String, Integer, Numeric, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from ..db.base import Base, new_id
from ._mixins import utcnow


class Menu(Base):
    __tablename__ = "menus"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    categories = relationship("Category", back_populates="menu", cascade="all, delete-orphan")


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    menu_id = Column(String(36), ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    menu = relationship("Menu", back_populates="categories")
    menu_items = relationship("MenuItem", back_populates="category", cascade="all, delete-orphan")


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    kitchen_section_id = Column(
        String(36), ForeignKey("kitchen_sections.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name = Column(String(128), nullable=False)
    name_ar = Column(String(128), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    discount = Column(Integer, nullable=True)  # процент, 0..100
    # {"size": {"name": "Size", "options": [{"id": "l", "name": "Large", "nameAr": "...", "price": 5}]}}
    extras = Column(JSON, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # связи
    category = relationship("Category", back_populates="menu_items")
    kitchen_section = relationship("KitchenSection", back_populates="menu_items")
    order_items = relationship("OrderItem", back_populates="menu_item")
