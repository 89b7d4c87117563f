import logging
import os
from pathlib import Path

from sqlmodel import SQLModel, create_engine

logger = logging.getLogger(__name__)

# SQLite file used by the local (on-device) storage backend
db_path = os.getenv("DATABASE_PATH", "./healthtracker.db")


def get_database_url() -> str:
    """Resolve the database URL from the environment."""
    database_url = os.getenv("DATABASE_URL") or f"sqlite:///{db_path}"

    # SQLAlchemy needs postgresql:// rather than the postgres:// shorthand
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def create_db_engine(database_url: str | None = None):
    """Create an engine, making sure the parent folder of a SQLite file exists."""
    database_url = database_url or get_database_url()
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url.startswith("sqlite:///") and database_url != "sqlite:///:memory:":
            Path(database_url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)

    # Log database driver for observability
    db_driver = database_url.split(":", 1)[0] if ":" in database_url else "unknown"
    logger.info(f"DB_URL_DRIVER={db_driver}")

    return create_engine(database_url, echo=False, connect_args=connect_args)


def create_db_and_tables(engine):
    """Create the key/value table if it doesn't exist.
    This is safe to call multiple times - it won't wipe existing data.
    """
    SQLModel.metadata.create_all(engine)
