from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class StorageItem(SQLModel, table=True):
    """One key of the local key/value medium; the value is an opaque JSON string."""

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
