from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from rgaa_scanner.platform.config import settings
from rgaa_scanner.platform.db.base import Base, import_models


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 20,
        "max_overflow": 30,
        "pool_timeout": 30,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    **_engine_options(settings.DATABASE_URL),
)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False, autocommit=False)


def create_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    """
    Independent engine + session factory for code running in its own event loop
    (Celery workers call asyncio.run per task, pooled connections can't cross loops).
    """
    worker_engine = create_async_engine(database_url, echo=False, poolclass=NullPool)
    return async_sessionmaker(worker_engine, expire_on_commit=False, autoflush=False, autocommit=False)


async def init_models(bind=None) -> None:
    """Create missing tables. Schema migrations are owned outside the scan core."""
    import_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with SessionLocal() as session:
        yield session
