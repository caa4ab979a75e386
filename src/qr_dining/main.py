import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qr_dining.api import health
from qr_dining.api.routes.kitchen import router as kitchen_router
from qr_dining.api.routes.orders import router as orders_router
from qr_dining.config import settings
from qr_dining.db.session import engine
from qr_dining.errors import register_error_handlers
from qr_dining.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("API started")
    yield
    await engine.dispose()
    logger.info("API stopped")


app = FastAPI(title="QR Dining API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

# Подключаем роуты
app.include_router(health.router)
app.include_router(orders_router)
app.include_router(kitchen_router)
