import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from judgeboard.core.config import settings
from judgeboard.db.base import Base


def _connect_args(url: str) -> dict:
    if url.startswith("postgresql://"):
        return {"connect_timeout": 30}
    if url.startswith("sqlite"):
        # Stores run queries from FastAPI's threadpool
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def get_db():
    """Dependency for FastAPI to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create tables for every model registered on Base."""
    import judgeboard.models  # noqa: F401  (registers tables)

    Base.metadata.create_all(bind=bind or engine)
    logging.getLogger(__name__).info("database_tables_ready")
