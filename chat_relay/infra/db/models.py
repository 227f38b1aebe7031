"""Key-value record database model (user records / push tokens)."""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String

from chat_relay.infra.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueRecordModel(Base):
    """One JSON document addressed by (collection, key)."""

    __tablename__ = "kv_records"

    collection = Column(String, primary_key=True)
    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
