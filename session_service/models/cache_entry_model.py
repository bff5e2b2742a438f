from sqlalchemy import Column, String, Text, DateTime
from session_service.db import Base


class CacheEntry(Base):
    """Key-value row backing the relational session cache."""

    __tablename__ = "cache_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
