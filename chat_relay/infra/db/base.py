"""Async SQLAlchemy engine, sessions and declarative base for the SQL store."""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


def normalize_async_url(url: str) -> str:
    """Ensure URL uses an async driver; cloud often gives postgresql:// or sqlite:// (sync)."""
    u = (url or "").strip()
    if u.startswith("postgresql://"):
        return u.replace("postgresql://", "postgresql+asyncpg://", 1)
    if u.startswith("sqlite://"):
        return u.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return u


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(normalize_async_url(url), echo=echo, future=True, pool_pre_ping=True)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class Base(DeclarativeBase):
    """Base class for all models."""
    pass
