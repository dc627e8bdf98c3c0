from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from typing import AsyncGenerator

from .config import settings
from .models.base import Base

def _connect_args(url: str) -> dict:
    # Khusus SQLite: koneksi dipakai lintas thread oleh aiosqlite
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}

# Buat async engine ke database sesuai URL dari config
async_engine = create_async_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    echo=settings.SQL_ECHO,
)

# Session maker untuk membuat session database
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

async def init_models(engine=None):
    """Buat semua tabel sesuai metadata model."""
    from . import models  # noqa: F401  (registrasi semua tabel ke Base.metadata)

    engine = engine or async_engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency untuk menyediakan database session per request.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
