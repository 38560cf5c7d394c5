from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from .config import settings

# check_same_thread=False: sessions are opened from FastAPI's threadpool
# and from the availability data source's worker threads
engine = create_engine(
    settings.resolved_database_url,
    connect_args={"check_same_thread": False}
)

@event.listens_for(engine, "connect")
def enable_sqlite_fk(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Dependency для FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
