from .user import User, RoleEnum
from .restaurant import Restaurant, Plan, Subscription, SubscriptionStatusEnum
from .menu import Menu, Category, MenuItem
from .kitchen_section import KitchenSection
from .qr_code import QRCode, ROOT_TABLE
from .order import Order, OrderStatusEnum, OrderTypeEnum, TERMINAL_STATUSES
from .order_item import OrderItem, KitchenItemStatusEnum
from .notification import Notification, NotificationTypeEnum

__all__ = [
    "User",
    "RoleEnum",
    "Restaurant",
    "Plan",
    "Subscription",
    "SubscriptionStatusEnum",
    "Menu",
    "Category",
    "MenuItem",
    "KitchenSection",
    "QRCode",
    "ROOT_TABLE",
    "Order",
    "OrderStatusEnum",
    "OrderTypeEnum",
    "TERMINAL_STATUSES",
    "OrderItem",
    "KitchenItemStatusEnum",
    "Notification",
    "NotificationTypeEnum",
]
