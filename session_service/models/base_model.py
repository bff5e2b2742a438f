import uuid
from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import UUID
from session_service.db import Base
from session_service.utils.timeutils import utc_now


# --- Common base model with UUID PK and UTC timestamps ---
class BaseModel(Base):
    __abstract__ = True

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )

    date_created = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    date_updated = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
