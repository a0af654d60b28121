from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from subplanner.db import Base


def utc_now():
    return datetime.now(timezone.utc)


class StorageEntry(Base):
    """A single key-value blob. The subscription collection lives under one key."""

    __tablename__ = "storage_entries"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
