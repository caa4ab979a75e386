import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from qr_dining.config import settings
from qr_dining.crud.order import get_active_subscription
from qr_dining.db.session import get_async_session
from qr_dining.errors import ForbiddenError, NotFoundError, UnauthorizedError
from qr_dining.models import Restaurant, User
from qr_dining.services.notifier import RelayNotifier, relay_notifier

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth-token"


@dataclass
class CurrentUser:
    user: User
    restaurant_id: Optional[str] = None

    @property
    def id(self) -> str:
        return self.user.id


def get_notifier() -> RelayNotifier:
    return relay_notifier


def get_client_ip(request: Request) -> Optional[str]:
    """
    IP клиента за прокси: CF-Connecting-IP, X-Real-IP, X-Forwarded-For
    (последний адрес цепочки), иначе адрес соединения.
    """
    headers = request.headers
    for header in ("cf-connecting-ip", "x-real-ip"):
        value = headers.get(header)
        if value and value.strip():
            return value.strip()

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        ips = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
        if ips:
            return ips[-1]

    return request.client.host if request.client else None


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(AUTH_COOKIE)
    if token:
        return token
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> CurrentUser:
    token = _extract_token(request)
    if not token:
        raise UnauthorizedError("Access denied. No token provided.")

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise UnauthorizedError("Invalid token.")

    result = await db.execute(
        select(User).options(selectinload(User.restaurants)).where(User.id == payload.get("id"))
    )
    user = result.scalars().first()
    if user is None or not user.is_active:
        raise UnauthorizedError("Invalid token or user not found.")

    restaurant_id = user.restaurants[0].id if user.restaurants else None
    return CurrentUser(user=user, restaurant_id=restaurant_id)


async def require_restaurant(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.restaurant_id:
        raise ForbiddenError("Access denied. Restaurant access required.")
    return current


async def require_active_restaurant(
    current: CurrentUser = Depends(require_restaurant),
    db: AsyncSession = Depends(get_async_session),
) -> CurrentUser:
    """
    Ресторан должен быть активен и иметь активную подписку.
    Ресторан без подписки выключается прямо здесь.
    """
    restaurant = await db.get(Restaurant, current.restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")

    if not restaurant.is_active:
        raise ForbiddenError(
            "Your restaurant account has been deactivated. Please contact support or renew your subscription.",
            "تم تعطيل حساب المطعم الخاص بك. يرجى الاتصال بالدعم أو تجديد اشتراكك.",
        )

    if await get_active_subscription(db, restaurant.id) is None:
        restaurant.is_active = False
        await db.commit()
        logger.warning("Restaurant %s deactivated: no active subscription", restaurant.id)
        raise ForbiddenError(
            "Your subscription has expired. Please renew your subscription to continue using the service.",
            "انتهى اشتراكك. يرجى تجديد اشتراكك لمتابعة استخدام الخدمة.",
        )
    return current
