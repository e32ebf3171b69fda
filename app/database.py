from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings


def make_engine(url: str):
    return create_async_engine(url, pool_pre_ping=True)


def make_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


engine = make_engine(settings.DATABASE_URL or "postgresql+asyncpg://localhost/shop")
AsyncSessionLocal = make_session_factory(engine)
