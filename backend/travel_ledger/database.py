from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from travel_ledger.config import settings


def build_engine(database_url: str):
    """Create an engine; SQLite connections are shared with the request threadpool."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
