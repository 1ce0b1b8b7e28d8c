# qrinspect/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from qrinspect.core.config import DATABASE_URL

_is_sqlite = DATABASE_URL.startswith("sqlite")

# Create engine
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},  # SQLite + threads
    pool_pre_ping=True,  # safer reconnects
    future=True,
)


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


# Enforce foreign keys in SQLite
if _is_sqlite:
    event.listen(engine, "connect", enable_sqlite_foreign_keys)


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
)
