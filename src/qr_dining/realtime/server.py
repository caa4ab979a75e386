"""
Процесс realtime-релея: Socket.IO сервер + HTTP-вход для API-процесса.

Запуск: uvicorn qr_dining.realtime.server:app --port 5001
"""
import hmac
import logging
from datetime import datetime, timezone

import socketio
from fastapi import APIRouter, Depends, FastAPI, Request

from qr_dining.config import settings
from qr_dining.db.session import AsyncSessionLocal
from qr_dining.errors import UnauthorizedError, register_error_handlers
from qr_dining.logging_config import setup_logging
from qr_dining.realtime.handlers import SocketHandlers
from qr_dining.realtime.relay import BroadcastRelay
from qr_dining.schemas.base import ok
from qr_dining.schemas.realtime import KdsUpdateEvent, NotificationEvent, OrderUpdateEvent

logger = logging.getLogger(__name__)


def require_internal_secret(request: Request) -> None:
    """Вход релея закрыт общим секретом, если он задан в настройках."""
    expected = settings.RELAY_INTERNAL_SECRET
    if not expected:
        return
    provided = (request.headers.get("X-Internal-Secret") or "").strip()
    if not provided or not hmac.compare_digest(provided, expected):
        raise UnauthorizedError("internal auth required")


def create_ingress(relay: BroadcastRelay) -> FastAPI:
    ingress = FastAPI(title="QR Dining Relay")
    register_error_handlers(ingress)

    @ingress.get("/health")
    async def health():
        return {"status": "ok", "service": "relay", "timestamp": datetime.now(timezone.utc)}

    router = APIRouter(prefix="/api", dependencies=[Depends(require_internal_secret)])

    @router.post("/emit-order-update")
    async def emit_order_update(event: OrderUpdateEvent):
        rooms = await relay.emit_order_update(event)
        return ok(message="Order update emitted", rooms=rooms)

    @router.post("/emit-kds-update")
    async def emit_kds_update(event: KdsUpdateEvent):
        events = await relay.emit_kds_update(event)
        return ok(message="KDS update emitted", events=events)

    @router.post("/emit-notification")
    async def emit_notification(event: NotificationEvent):
        rooms = await relay.emit_notification(event)
        return ok(message="Notification emitted", rooms=rooms)

    ingress.include_router(router)
    return ingress


def create_sio() -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.CORS_ORIGINS,
        ping_timeout=60,
        ping_interval=25,
    )


setup_logging()

sio = create_sio()
relay = BroadcastRelay(sio)
SocketHandlers(relay, AsyncSessionLocal).register(sio)

app = socketio.ASGIApp(sio, other_asgi_app=create_ingress(relay))
