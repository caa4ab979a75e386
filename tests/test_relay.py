from sqlalchemy.exc import SQLAlchemyError

from qr_dining.models import OrderStatusEnum
from qr_dining.realtime.handlers import SocketHandlers
from qr_dining.realtime.relay import BroadcastRelay
from qr_dining.realtime.rooms import ADMIN_ALL, restaurant_room, table_room
from qr_dining.schemas.realtime import KdsUpdateEvent, NotificationEvent, OrderUpdateEvent

ORDER = {"id": "order-1", "status": "READY"}


def _order_event(**kwargs):
    data = {"order": ORDER, "updatedBy": "kitchen", "restaurantId": "r1"}
    data.update(kwargs)
    return OrderUpdateEvent.model_validate(data)


async def test_order_update_reaches_restaurant_and_table(fake_sio):
    relay = BroadcastRelay(fake_sio)
    rooms = await relay.emit_order_update(_order_event(qrCodeId="qr1"))

    assert rooms == [restaurant_room("r1"), table_room("qr1")]
    assert [event for event, _ in fake_sio.to("restaurant_r1")] == ["order_update", "order_status_update"]
    assert [event for event, _ in fake_sio.to("table_qr1")] == ["order_update", "order_status_update"]
    _, payload = fake_sio.to("table_qr1")[0]
    assert payload["order"] == ORDER
    assert payload["updatedBy"] == "kitchen"


async def test_skip_restaurant_room_reaches_only_table(fake_sio):
    relay = BroadcastRelay(fake_sio)
    rooms = await relay.emit_order_update(_order_event(qrCodeId="qr1", skipRestaurantRoom=True))

    assert rooms == [table_room("qr1")]
    assert fake_sio.to("restaurant_r1") == []
    assert len(fake_sio.to("table_qr1")) == 2


async def test_order_update_without_table(fake_sio):
    relay = BroadcastRelay(fake_sio)
    await relay.emit_order_update(_order_event())
    assert {target for _, _, target in fake_sio.emitted} == {"restaurant_r1"}


async def test_kds_update_from_customer_also_updates_orders(fake_sio):
    relay = BroadcastRelay(fake_sio)
    await relay.emit_kds_update(
        KdsUpdateEvent.model_validate({"orderItem": {"id": "new-items"}, "restaurantId": "r1", "source": "customer"})
    )
    assert [event for event, _ in fake_sio.to("restaurant_r1")] == ["kds_update", "order_update"]


async def test_kds_update_from_kitchen(fake_sio):
    relay = BroadcastRelay(fake_sio)
    await relay.emit_kds_update(KdsUpdateEvent.model_validate({"orderItem": None, "restaurantId": "r1"}))
    events = fake_sio.to("restaurant_r1")
    assert [event for event, _ in events] == ["kds_update"]
    assert events[0][1]["orderItem"] is None
    assert events[0][1]["source"] == "kitchen"


async def test_notification_fans_out_to_each_restaurant(fake_sio):
    relay = BroadcastRelay(fake_sio)
    rooms = await relay.emit_notification(
        NotificationEvent.model_validate({"notification": {"title": "Hi"}, "restaurantIds": ["r1", "r2"]})
    )
    assert rooms == ["restaurant_r1", "restaurant_r2"]
    assert fake_sio.events() == ["notification", "notification"]


# --- обработчики сокета ---

def _handlers(fake_sio, session_factory):
    handlers = SocketHandlers(BroadcastRelay(fake_sio), session_factory)
    handlers.register(fake_sio)
    return handlers


async def test_handlers_are_registered(fake_sio, session_factory):
    _handlers(fake_sio, session_factory)
    assert set(fake_sio.handlers) == set(SocketHandlers.EVENTS)


async def test_join_restaurant(fake_sio, session_factory, seed):
    handlers = _handlers(fake_sio, session_factory)

    await handlers.join_restaurant("sid-1", {"restaurantId": seed.restaurant.id})
    await handlers.join_restaurant("sid-2", {"restaurantId": "missing"})

    assert fake_sio.rooms == {"sid-1": {restaurant_room(seed.restaurant.id)}}
    assert fake_sio.to("sid-1") == [("joined_restaurant", {"restaurantId": seed.restaurant.id})]
    assert fake_sio.to("sid-2")[0][0] == "error"


async def test_join_table_and_admin(fake_sio, session_factory, seed, db):
    from qr_dining.models import RoleEnum, User

    admin = User(email="admin@example.com", role=RoleEnum.ADMIN)
    db.add(admin)
    await db.commit()
    handlers = _handlers(fake_sio, session_factory)

    await handlers.join_table("sid-1", {"qrCodeId": seed.table5.id})
    await handlers.join_admin("sid-2", {"adminId": admin.id})
    await handlers.join_admin("sid-3", {"adminId": seed.owner.id})

    assert fake_sio.rooms["sid-1"] == {table_room(seed.table5.id)}
    assert fake_sio.rooms["sid-2"] == {f"admin_{admin.id}", ADMIN_ALL}
    assert "sid-3" not in fake_sio.rooms
    assert fake_sio.to("sid-3")[0][0] == "error"



class BrokenSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def get(self, *args, **kwargs):
        raise SQLAlchemyError("db down")


async def test_join_reports_store_failure(fake_sio):
    handlers = _handlers(fake_sio, BrokenSession)

    await handlers.join_restaurant("sid-1", {"restaurantId": "r1"})
    await handlers.join_table("sid-2", {"qrCodeId": "q1"})
    await handlers.join_admin("sid-3", {"adminId": "a1"})

    assert fake_sio.rooms == {}
    assert fake_sio.to("sid-1") == [("error", {"message": "Failed to join restaurant room"})]
    assert fake_sio.to("sid-2") == [("error", {"message": "Failed to join table room"})]
    assert fake_sio.to("sid-3") == [("error", {"message": "Failed to join admin room"})]

async def test_socket_create_order(fake_sio, session_factory, seed):
    handlers = _handlers(fake_sio, session_factory)

    await handlers.create_order(
        "sid-1",
        {"restaurantId": seed.restaurant.id, "tableNumber": "5", "items": [{"menuItemId": seed.burger.id, "quantity": 1}]},
    )

    created = fake_sio.to("sid-1")
    assert created[0][0] == "order_created"
    assert created[0][1]["order"]["totalPrice"] == 50000
    room = restaurant_room(seed.restaurant.id)
    assert [event for event, _ in fake_sio.to(room)] == ["new_order", "kds_update"]
    assert [event for event, _ in fake_sio.to(ADMIN_ALL)] == ["new_order"]
    kds = fake_sio.to(room)[1][1]
    assert kds["orderItem"]["id"] == "new-order"
    assert kds["source"] == "customer"


async def test_socket_create_order_on_free_table_fails(fake_sio, session_factory, seed):
    handlers = _handlers(fake_sio, session_factory)

    await handlers.create_order(
        "sid-1",
        {"restaurantId": seed.restaurant.id, "tableNumber": "7", "items": [{"menuItemId": seed.burger.id, "quantity": 1}]},
    )
    await handlers.create_order("sid-2", {"restaurantId": seed.restaurant.id, "items": []})

    assert fake_sio.to("sid-1")[0][0] == "order_error"
    assert fake_sio.to("sid-2")[0][0] == "order_error"
    assert "new_order" not in fake_sio.events()


async def test_socket_quick_order_is_rejected(fake_sio, session_factory, seed):
    handlers = _handlers(fake_sio, session_factory)

    await handlers.create_order(
        "sid-1",
        {"restaurantId": seed.restaurant.id, "tableNumber": "QUICK", "items": [{"menuItemId": seed.burger.id, "quantity": 1}]},
    )

    assert fake_sio.to("sid-1") == [("order_error", {"message": "Invalid table number"})]
    assert "new_order" not in fake_sio.events()


async def test_socket_update_order_status(fake_sio, session_factory, seed):
    handlers = _handlers(fake_sio, session_factory)
    await handlers.create_order(
        "sid-1",
        {"restaurantId": seed.restaurant.id, "tableNumber": "5", "items": [{"menuItemId": seed.soup.id, "quantity": 1}]},
    )
    order_id = fake_sio.to("sid-1")[0][1]["order"]["id"]
    fake_sio.emitted.clear()

    await handlers.update_order_status("sid-1", {"orderId": order_id, "status": "PREPARING", "updatedBy": "cashier"})

    room = restaurant_room(seed.restaurant.id)
    assert [event for event, _ in fake_sio.to(room)] == ["order_updated", "order_update", "order_status_update"]
    table_events = fake_sio.to(table_room(seed.table5.id))
    assert [event for event, _ in table_events] == ["order_status_update"]
    assert table_events[0][1]["order"]["status"] == OrderStatusEnum.PREPARING.value

    await handlers.update_order_status("sid-1", {"orderId": order_id, "status": "EATEN"})
    await handlers.update_order_status("sid-1", {"orderId": "missing", "status": "READY"})
    assert [event for event, _ in fake_sio.to("sid-1")] == ["error", "error"]


async def test_request_waiter(fake_sio, session_factory, seed):
    handlers = _handlers(fake_sio, session_factory)

    await handlers.request_waiter("sid-1", {"restaurantId": seed.restaurant.id, "tableNumber": "5", "orderType": "DINE_IN"})

    room = restaurant_room(seed.restaurant.id)
    request = fake_sio.to(room)
    assert request[0][0] == "waiter_request"
    assert request[0][1]["notification"]["type"] == "WAITER_REQUEST"
    assert request[0][1]["tableNumber"] == "5"
    assert fake_sio.to("sid-1")[0][0] == "waiter_request_sent"


async def test_request_waiter_rejections(fake_sio, session_factory, seed):
    handlers = _handlers(fake_sio, session_factory)

    await handlers.request_waiter("sid-1", {"restaurantId": seed.restaurant.id, "tableNumber": "7"})
    await handlers.request_waiter("sid-2", {"restaurantId": seed.restaurant.id, "tableNumber": "99"})
    await handlers.request_waiter("sid-3", {"restaurantId": "missing", "tableNumber": "5"})
    await handlers.request_waiter("sid-4", {"restaurantId": seed.restaurant.id, "orderType": "DELIVERY"})

    for sid in ("sid-1", "sid-2", "sid-3"):
        assert fake_sio.to(sid)[0][0] == "waiter_request_error"
    assert fake_sio.to("sid-4")[0][0] == "waiter_request_sent"
