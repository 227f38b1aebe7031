"""SQL-backed key-value store (SQLAlchemy async)."""
import logging
from typing import Any, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from chat_relay.domain.common.errors import NotFoundError, StoreError
from chat_relay.infra.db.base import Base, make_engine, make_sessionmaker
from chat_relay.infra.db.models import KeyValueRecordModel

logger = logging.getLogger(__name__)

# Connection failures from the async drivers (e.g. asyncpg ConnectionRefusedError) arrive as bare OSError.
_DRIVER_ERRORS = (SQLAlchemyError, OSError)


class SqlKeyValueStore:
    """KeyValueStore over the kv_records table. Tables are created lazily on first use."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessionmaker = make_sessionmaker(engine)
        self._schema_ready = False

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlKeyValueStore":
        return cls(make_engine(database_url, echo=echo))

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._schema_ready = True

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(KeyValueRecordModel.value).where(
                        KeyValueRecordModel.collection == collection,
                        KeyValueRecordModel.key == key,
                    )
                )
                value = result.scalar_one_or_none()
        except _DRIVER_ERRORS as e:
            raise StoreError(f"sql get failed: {e}", code=type(e).__name__)
        return dict(value) if value is not None else None

    async def set(self, collection: str, key: str, value: dict[str, Any]) -> None:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                row = await session.get(KeyValueRecordModel, (collection, key))
                if row:
                    row.value = dict(value)
                else:
                    session.add(KeyValueRecordModel(collection=collection, key=key, value=dict(value)))
                await session.commit()
        except _DRIVER_ERRORS as e:
            raise StoreError(f"sql set failed: {e}", code=type(e).__name__)

    async def update(self, collection: str, key: str, fields: dict[str, Any]) -> None:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                row = await session.get(KeyValueRecordModel, (collection, key))
                if row is None:
                    raise NotFoundError(collection, key)
                # Reassign so the JSON column is flagged dirty.
                row.value = {**row.value, **fields}
                await session.commit()
        except _DRIVER_ERRORS as e:
            raise StoreError(f"sql update failed: {e}", code=type(e).__name__)

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except _DRIVER_ERRORS as e:
            logger.warning("Database ping failed: %s", e)
            return False

    async def close(self) -> None:
        await self.engine.dispose()
