"""Database connection and session management."""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from inventory.config import get_settings

settings = get_settings()


def _engine_options(database_url: str) -> dict:
    """Pool options for the configured backend (SQLite has no connection pool sizing)."""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))


@event.listens_for(engine, "connect")
def set_statement_timeout(dbapi_connection, connection_record):
    """Bound statement run time on PostgreSQL."""
    if engine.dialect.name != "postgresql":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("SET statement_timeout = '30s'")
    cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
