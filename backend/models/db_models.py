from sqlalchemy import Column, String, Text, DateTime
import datetime
from database import Base


class StorageEntryDB(Base):
    """One named entry of client-local storage (the session lives under "chats")."""
    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.datetime.now(datetime.timezone.utc),
        onupdate=lambda: datetime.datetime.now(datetime.timezone.utc),
    )
