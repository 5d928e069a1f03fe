"""SQLModel engine and session management for the document store."""
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# Import models so SQLModel.metadata knows about all tables
import garage.models.document  # noqa: F401


def make_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, echo=False)


def create_db_and_tables(engine: Engine) -> None:
    """Create all tables defined in SQLModel models."""
    SQLModel.metadata.create_all(engine)