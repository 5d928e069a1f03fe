"""SQLModel table backing the durable document store."""
from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field, UniqueConstraint


class StoredDocument(SQLModel, table=True):
    """One record of one collection, serialised as JSON.

    Writes are last-write-wins keyed by (collection, record_id).
    """

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "record_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    collection: str = Field(index=True)
    record_id: str = Field(index=True)
    payload: str  # JSON text
    updated_at: datetime = Field(default_factory=datetime.utcnow)
