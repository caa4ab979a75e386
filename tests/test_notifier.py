import json

import httpx

from qr_dining.schemas.order import OrderCreate
from qr_dining.services import kitchen
from qr_dining.services.ingestion import OriginContext, create_order
from qr_dining.services.notifier import RelayNotifier


class Recorder:
    def __init__(self, status_code=200):
        self.requests = []
        self.status_code = status_code

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"success": True})

    def calls(self):
        return [(r.url.path, json.loads(r.content)) for r in self.requests]


def _notifier(recorder, secret="s3cret"):
    return RelayNotifier("http://relay.local", secret=secret, transport=httpx.MockTransport(recorder))


async def _order(db, seed, table="5"):
    payload = OrderCreate(
        restaurantId=seed.restaurant.id,
        tableNumber=table,
        items=[{"menuItemId": seed.burger.id, "quantity": 1}],
    )
    return await create_order(db, payload, OriginContext(transport="http"))


async def test_order_created_emits_order_kds_and_notification(db, seed):
    recorder = Recorder()
    result = await _order(db, seed)

    await _notifier(recorder).order_created(result)

    calls = recorder.calls()
    assert [path for path, _ in calls] == [
        "/api/emit-order-update",
        "/api/emit-kds-update",
        "/api/emit-notification",
    ]
    order_update = calls[0][1]
    assert order_update["updatedBy"] == "customer"
    assert order_update["qrCodeId"] == seed.table5.id
    assert order_update["order"]["totalPrice"] == 50000
    assert calls[1][1]["orderItem"]["id"] == "new-order"
    assert calls[2][1]["restaurantIds"] == [seed.restaurant.id]
    assert all(r.headers["X-Internal-Secret"] == "s3cret" for r in recorder.requests)


async def test_quick_order_is_reported_as_restaurant(db, seed):
    recorder = Recorder()
    result = await _order(db, seed, table="QUICK")

    await _notifier(recorder, secret="").order_created(result)

    calls = recorder.calls()
    assert [path for path, _ in calls] == ["/api/emit-order-update", "/api/emit-kds-update"]
    assert calls[0][1]["updatedBy"] == "restaurant"
    assert calls[1][1]["source"] == "restaurant"
    assert "X-Internal-Secret" not in recorder.requests[0].headers


async def test_promotion_goes_to_table_only(db, seed):
    recorder = Recorder()
    order = (await _order(db, seed)).order
    result = await kitchen.set_item_status(db, seed.restaurant.id, order.items[0].id, "COMPLETED")
    assert result.promoted

    await _notifier(recorder).kitchen_item_changed(result)

    calls = recorder.calls()
    assert [path for path, _ in calls] == [
        "/api/emit-order-update",
        "/api/emit-kds-update",
        "/api/emit-kds-update",
    ]
    assert calls[0][1]["skipRestaurantRoom"] is True
    assert calls[0][1]["updatedBy"] == "kitchen"
    assert calls[0][1]["order"]["status"] == "READY"
    assert calls[1][1]["orderItem"] is None
    assert calls[2][1]["orderItem"]["kitchenItemStatus"] == "COMPLETED"
    assert all(body["source"] == "kitchen" for _, body in calls[1:])


async def test_promotion_payload_from_fresh_sessions(session_factory, seed):
    recorder = Recorder()
    async with session_factory() as s:
        payload = OrderCreate(
            restaurantId=seed.restaurant.id,
            tableNumber="5",
            items=[{"menuItemId": seed.burger.id, "quantity": 1}, {"menuItemId": seed.soup.id, "quantity": 1}],
        )
        order = (await create_order(s, payload, OriginContext(transport="http"))).order
        item_ids = [item.id for item in order.items]

    # каждая позиция отмечается в своей сессии, как отдельные запросы кухни
    for item_id in item_ids:
        async with session_factory() as s:
            result = await kitchen.set_item_status(s, seed.restaurant.id, item_id, "COMPLETED")
            await _notifier(recorder).kitchen_item_changed(result)
    assert result.promoted

    calls = recorder.calls()
    order_updates = [body for path, body in calls if path == "/api/emit-order-update"]
    assert len(order_updates) == 1
    assert order_updates[0]["skipRestaurantRoom"] is True
    assert order_updates[0]["order"]["status"] == "READY"
    names = {item["menuItem"]["name"] for item in order_updates[0]["order"]["items"]}
    assert names == {seed.burger.name, seed.soup.name}


async def test_terminal_status_refreshes_kitchen(db, seed):
    from qr_dining.models import OrderStatusEnum
    from qr_dining.services.status import update_order_status

    recorder = Recorder()
    order = (await _order(db, seed)).order
    order = await update_order_status(db, order.id, OrderStatusEnum.COMPLETED)

    await _notifier(recorder).status_changed(order)

    calls = recorder.calls()
    assert [path for path, _ in calls] == ["/api/emit-order-update", "/api/emit-kds-update"]
    assert calls[1][1]["orderItem"] is None


async def test_relay_failure_is_swallowed(db, seed, caplog):
    def boom(request):
        raise httpx.ConnectError("relay down", request=request)

    notifier = RelayNotifier("http://relay.local", transport=httpx.MockTransport(boom))
    order = (await _order(db, seed)).order

    assert await notifier.order_update(order, "customer") is False
    assert "Relay call /api/emit-order-update failed" in caplog.text


async def test_relay_error_status_is_reported(db, seed):
    notifier = _notifier(Recorder(status_code=401))
    order = (await _order(db, seed)).order
    assert await notifier.order_update(order, "customer") is False
