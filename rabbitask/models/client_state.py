"""ClientStateEntry model — durable key/value client storage."""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime

from ..database import Base


class ClientStateEntry(Base):
    __tablename__ = "client_state"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
