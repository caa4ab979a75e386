import os
from decimal import Decimal
from types import SimpleNamespace

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RELAY_INTERNAL_SECRET", "")

from qr_dining.config import settings  # noqa: E402
from qr_dining.db.base import Base  # noqa: E402
from qr_dining.models import (  # noqa: E402
    Category,
    KitchenSection,
    Menu,
    MenuItem,
    Plan,
    QRCode,
    Restaurant,
    RoleEnum,
    Subscription,
    User,
)

PASTA_EXTRAS = {
    "size": {
        "name": "Size",
        "options": [
            {"id": "m", "name": "Medium", "nameAr": "وسط", "price": 0},
            {"id": "l", "name": "Large", "nameAr": "كبير", "price": 5},
        ],
    },
    "sauce": {
        "name": "Sauce",
        "options": [{"id": "bbq", "name": "BBQ", "nameAr": "باربكيو", "price": 2.5}],
    },
}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def create_restaurant(db, features=("KITCHEN_DISPLAY_SYSTEM",), subscribed=True, email="owner@example.com"):
    """Ресторан с меню, двумя кухонными секциями и столами 5 (занят) и 7 (свободен)."""
    owner = User(email=email, name="Owner", role=RoleEnum.RESTAURANT)
    restaurant = Restaurant(owner=owner, name="Shawarma House", name_ar="بيت الشاورما", currency="SYP")
    plan = Plan(name="Pro", features=list(features))
    db.add_all([owner, restaurant, plan])
    await db.flush()
    if subscribed:
        db.add(Subscription(restaurant_id=restaurant.id, plan_id=plan.id))

    grill = KitchenSection(restaurant_id=restaurant.id, name="Grill", name_ar="مشاوي", sort_order=1)
    bar = KitchenSection(restaurant_id=restaurant.id, name="Bar", name_ar="بار", sort_order=2)
    menu = Menu(restaurant_id=restaurant.id, name="Main")
    category = Category(menu=menu, name="Food")
    db.add_all([grill, bar, menu, category])
    await db.flush()

    burger = MenuItem(category_id=category.id, name="Burger", name_ar="برغر", price=Decimal("50000"),
                      kitchen_section=grill)
    pasta = MenuItem(category_id=category.id, name="Pasta", name_ar="باستا", price=Decimal("100"), discount=20,
                     extras=PASTA_EXTRAS, kitchen_section=grill)
    soup = MenuItem(category_id=category.id, name="Soup", name_ar="شوربة", price=Decimal("12.50"))
    hidden = MenuItem(category_id=category.id, name="Seasonal", price=Decimal("9"), is_available=False)
    table5 = QRCode(restaurant_id=restaurant.id, table_number="5", qr_code="https://qr.example/5", is_occupied=True)
    table7 = QRCode(restaurant_id=restaurant.id, table_number="7", qr_code="https://qr.example/7")
    db.add_all([burger, pasta, soup, hidden, table5, table7])
    await db.commit()

    return SimpleNamespace(
        owner=owner,
        restaurant=restaurant,
        plan=plan,
        grill=grill,
        bar=bar,
        burger=burger,
        pasta=pasta,
        soup=soup,
        hidden=hidden,
        table5=table5,
        table7=table7,
    )


@pytest.fixture
async def seed(db):
    return await create_restaurant(db)


class FakeNotifier:
    """Записывает вызовы релея вместо HTTP."""

    def __init__(self):
        self.calls = []

    def names(self):
        return [name for name, _ in self.calls]

    async def order_created(self, result):
        self.calls.append(("order_created", result))

    async def items_added(self, order, source):
        self.calls.append(("items_added", (order, source)))

    async def status_changed(self, order, updated_by="restaurant"):
        self.calls.append(("status_changed", order))

    async def kitchen_item_changed(self, result):
        self.calls.append(("kitchen_item_changed", result))


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
async def client(session_factory, notifier):
    from qr_dining.api.deps import get_notifier
    from qr_dining.db.session import get_async_session
    from qr_dining.main import app

    async def override_get_async_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    token = jwt.encode({"id": user.id}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


class FakeSio:
    """Минимальный AsyncServer: копит emit и enter_room."""

    def __init__(self):
        self.emitted = []
        self.rooms = {}
        self.handlers = {}

    async def emit(self, event, data=None, to=None, **kwargs):
        self.emitted.append((event, data, to))

    async def enter_room(self, sid, room, namespace=None):
        self.rooms.setdefault(sid, set()).add(room)

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    def to(self, room):
        return [(event, data) for event, data, target in self.emitted if target == room]

    def events(self):
        return [event for event, _, _ in self.emitted]


@pytest.fixture
def fake_sio():
    return FakeSio()
