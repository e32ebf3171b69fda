# app/main.py
import sys
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.database import engine
from app.infrastructure.db_schema import metadata
from app.presentation.api import router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Таблицы созданы")
    except SQLAlchemyError as e:
        logger.warning(f"Не удалось создать таблицы: {e}")

    yield

    await engine.dispose()
    logger.info("Приложение останавливается...")

app = FastAPI(
    title="Shop Order Service",
    description="Сервис оформления заказов интернет-магазина",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Shop Order Service работает"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
